"""AI service contract, provider configuration, and the streaming result type."""

from collections.abc import Generator, Iterator
from dataclasses import dataclass, field
from types import TracebackType
from typing import Protocol

from carfind_api.schemas import ChatRequest, ChatResponse


@dataclass(frozen=True)
class ServiceConfig:
    api_key: str = field(repr=False)
    model: str
    max_tokens: int | None = None
    temperature: float | None = None
    base_url: str | None = None


class ResponseStream(Iterator[str]):
    """Single-pass stream of text fragments with a separately resolved final response.

    Wraps a generator that yields fragments and returns the accumulated
    ``ChatResponse``. Once the fragments are exhausted the response is
    available through :attr:`response`. Closing the stream early closes the
    wrapped generator, which releases the underlying provider call.
    """

    def __init__(self, fragments: Generator[str, None, ChatResponse]) -> None:
        self._fragments = fragments
        self._response: ChatResponse | None = None
        self._finished = False

    def __iter__(self) -> "ResponseStream":
        return self

    def __next__(self) -> str:
        if self._finished:
            raise StopIteration
        try:
            return next(self._fragments)
        except StopIteration as stop:
            self._finished = True
            self._response = stop.value
            raise
        except Exception:
            self._finished = True
            raise

    @property
    def completed(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> ChatResponse:
        if self._response is None:
            raise RuntimeError("Stream has not completed; consume every fragment first")
        return self._response

    def close(self) -> None:
        self._finished = True
        self._fragments.close()

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class AIService(Protocol):
    def generate_response(self, request: ChatRequest) -> ChatResponse:
        """Return one complete assistant response for the conversation in ``request``."""
        ...

    def generate_stream_response(self, request: ChatRequest) -> ResponseStream:
        """Return a lazy stream of text fragments for the conversation in ``request``."""
        ...
