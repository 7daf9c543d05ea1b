'''
Errors

Typed error hierarchy for the runtime. Each error may carry the underlying exception
that caused it (also chained as ``__cause__`` when raised with ``raise ... from``), so
store failures can be traced back to the driver.

- ConfigurationError: invalid or unresolvable entity bindings. Raised before any
  statement is attempted and never retried.
- ValidationError: malformed builder input (e.g., an empty INSERT value set).
- ExecutionError: failure inside a unit of work (prepare, execute, fetch, commit,
  rollback); always wraps the underlying cause.
- ResourceError: connection acquisition failed or timed out.
'''


class RelmapError(Exception):
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause   = cause

    def __str__(self):
        if self.cause is not None:
            return f'{self.message} (caused by {type(self.cause).__name__}: {self.cause})'
        return self.message


class ConfigurationError(RelmapError):
    pass


class ValidationError(RelmapError):
    pass


class ExecutionError(RelmapError):
    pass


class ResourceError(RelmapError):
    pass
