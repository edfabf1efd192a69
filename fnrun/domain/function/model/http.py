"""Request/response pair handed to raw HTTP functions."""

from dataclasses import dataclass, field
from urllib.parse import parse_qs

from fnrun.domain.function.model.out import STATUS_OK


@dataclass(frozen=True)
class HttpRequest:
    """Fully read inbound request. Header names are lower-cased."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(self.query_string)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class HttpResponse:
    """Response a raw HTTP function writes into; flushed by the HTTP trigger."""

    status_code: int = STATUS_OK
    headers: dict[str, str] = field(default_factory=dict)
    body: bytearray = field(default_factory=bytearray)

    def write(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.body.extend(data)

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_content_type(self, content_type: str) -> None:
        self.headers["content-type"] = content_type

    def reset(self) -> None:
        self.body.clear()
        self.headers.clear()
