"""fnrun: run functions behind HTTP and broker triggers, with hooks and tracing."""

from fnrun.authoring.function import cloudevent_function, function, http_function
from fnrun.authoring.interceptor import interceptor
from fnrun.domain.function.context import InvocationContext
from fnrun.domain.function.model.event import BindingEvent, CloudEvent, TopicEvent
from fnrun.domain.function.model.http import HttpRequest, HttpResponse
from fnrun.domain.function.model.out import Out
from fnrun.domain.interceptor.model import Hook, Interceptor, Phase, Plugin

__all__ = [
    "BindingEvent",
    "CloudEvent",
    "Hook",
    "HttpRequest",
    "HttpResponse",
    "Interceptor",
    "InvocationContext",
    "Out",
    "Phase",
    "Plugin",
    "TopicEvent",
    "cloudevent_function",
    "function",
    "http_function",
    "interceptor",
]
