"""Error types raised and carried by pledge promises."""
from enum import IntEnum
from typing import Optional

DOMAIN = "pledge"


class ErrorCode(IntEnum):
    """Codes used for errors produced by the library itself."""
    HANDLER_FAILED = 1
    NO_INPUTS = 2
    FAILED = 3


class PromiseError(Exception):
    """An error with a domain and an integer code.

    Workload errors may be any exception; this type is used where the
    library has to produce an error of its own, for instance when a
    `then`/`rescue` handler raises. The original exception is then
    available as `__cause__`.
    """

    def __init__(self, code: int, message: Optional[str] = None, domain: str = DOMAIN):
        self.code = code
        self.domain = domain
        self.message = message or _default_message(code, domain)
        super().__init__(self.message)

    def __repr__(self):
        return f"PromiseError(domain={self.domain!r}, code={self.code!r}, message={self.message!r})"


def _default_message(code: int, domain: str) -> str:
    if domain == DOMAIN:
        try:
            return ErrorCode(code).name.lower().replace('_', ' ')
        except ValueError:
            pass
    return f"{domain} error {code}"


def handler_failure(exc: BaseException) -> PromiseError:
    """Wrap an exception raised by a bind handler."""
    error = PromiseError(ErrorCode.HANDLER_FAILED, f"handler raised {type(exc).__name__}: {exc}")
    error.__cause__ = exc
    return error
