"""Tests for the authoring decorators, the registry and target discovery."""

import logging

import pytest

from fnrun import _registry, cloudevent_function, function, http_function, interceptor
from fnrun.domain.function.model.function import DEFAULT_METHODS, FunctionKind
from fnrun.domain.interceptor.model import Hook
from fnrun.domain.shared.error import ConfigurationError
from fnrun.infrastructure.discovery import (
    import_function_sources,
    resolve_function,
    resolve_functions,
    resolve_interceptor,
    resolve_interceptors,
)


class TestDecorators:
    def test_bare_decorator_registers_with_defaults(self):
        @function
        def orders(ctx, payload):
            return None

        info = _registry.lookup_function("orders")

        assert info.fn is orders
        assert info.kind is FunctionKind.GENERIC
        assert info.methods == DEFAULT_METHODS
        assert info.path == "/"

    def test_options(self):
        @http_function(name="hello", methods=["post", "get"], path="/hello")
        def handler(request, response):
            response.write("hi")

        info = _registry.lookup_function("hello")

        assert info.kind is FunctionKind.HTTP
        assert info.methods == frozenset({"POST", "GET"})
        assert info.path == "/hello"
        assert info.allows("get")
        assert not info.allows("DELETE")

    def test_lookup_by_qualified_name(self):
        @cloudevent_function
        def on_event(ctx, event):
            return None

        info = _registry.lookup_function("on_event")

        assert _registry.lookup_function(info.qualified_name) is info
        assert _registry.find_function(on_event) is info

    def test_duplicate_name_for_another_callable_fails(self):
        @function(name="dup")
        def first(ctx, payload):
            return None

        with pytest.raises(ValueError, match="already registered"):

            @function(name="dup")
            def second(ctx, payload):
                return None

    def test_interceptor_registers_under_its_name(self):
        @interceptor()
        class Audit(Hook):
            name = "audit"

            def execute(self, ctx, phase):
                return None

        assert _registry.lookup_interceptor("audit") is Audit

    def test_interceptor_rejects_non_interceptors(self):
        with pytest.raises(TypeError):

            @interceptor("plain")
            class Plain:
                pass


class TestResolveFunctions:
    def test_targets_keep_their_order(self):
        @function
        def first(ctx, payload):
            return None

        @function
        def second(ctx, payload):
            return None

        resolved = resolve_functions(["second", "first"])

        assert [f.name for f in resolved] == ["second", "first"]

    def test_unknown_target(self):
        @function
        def known(ctx, payload):
            return None

        with pytest.raises(ConfigurationError, match="Registered: known"):
            resolve_function("missing")

    def test_no_target(self):
        with pytest.raises(ConfigurationError):
            resolve_functions([])

    def test_unimportable_source(self):
        with pytest.raises(ConfigurationError, match="no_such_fnrun_module"):
            import_function_sources(["no_such_fnrun_module"])


class TestResolveInterceptors:
    def test_registered_interceptor_is_built(self):
        @interceptor("audit")
        class Audit(Hook):
            def execute(self, ctx, phase):
                return None

        assert isinstance(resolve_interceptor("audit"), Audit)

    def test_unknown_interceptor_is_skipped(self, caplog):
        @interceptor("audit")
        class Audit(Hook):
            def execute(self, ctx, phase):
                return None

        with caplog.at_level(logging.WARNING, logger="fnrun.infrastructure.discovery"):
            resolved = resolve_interceptors(["missing", "audit"])

        assert [type(i) for i in resolved] == [Audit]
        assert "missing" in caplog.text

    def test_factory_building_something_else_is_skipped(self):
        _registry.register_interceptor("odd", lambda: object())

        assert resolve_interceptor("odd") is None
