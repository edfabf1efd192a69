"""Invocation result and its normalization into a transport response."""

from dataclasses import dataclass, field, replace

from fnrun.domain.shared.error import ErrorValue, error_message

SUCCESS_BODY = b"Success"
STATUS_OK = 200
STATUS_SERVER_ERROR = 500


@dataclass
class Out:
    """Result of one invocation.

    Attributes:
        code: Status code, ``None`` until set.
        error: Error reported by the function (an exception or a message).
        data: Payload bytes.
        metadata: Optional key/values, passed on to post hooks.
    """

    code: int | None = None
    error: ErrorValue | None = None
    data: bytes | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: bytes | str | None = None, code: int = STATUS_OK) -> "Out":
        if isinstance(data, str):
            data = data.encode("utf-8")
        return cls(code=code, data=data)

    @classmethod
    def fail(cls, error: ErrorValue) -> "Out":
        return cls(code=STATUS_SERVER_ERROR, error=error)

    @property
    def error_message(self) -> str | None:
        return None if self.error is None else error_message(self.error)

    @property
    def text(self) -> str | None:
        return None if self.data is None else self.data.decode("utf-8", errors="replace")


def normalize(out: Out | None) -> Out:
    """Turn an optional Out into a complete one. Idempotent.

    - missing Out: 200 with body ``Success``
    - error present: 500 with the error message as body, whatever code was set
    - no error, no body: body ``Success``; code defaults to 200
    """
    if out is None:
        return Out(code=STATUS_OK, data=SUCCESS_BODY)

    if out.error is not None:
        return replace(
            out,
            code=STATUS_SERVER_ERROR,
            data=error_message(out.error).encode("utf-8"),
        )

    return replace(
        out,
        code=STATUS_OK if out.code is None else out.code,
        data=SUCCESS_BODY if out.data is None else out.data,
    )
