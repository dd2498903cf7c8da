from __future__ import annotations


class SolverConfigError(ValueError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class SparseCholeskyFatalError(SystemExit):
    """Unrecoverable backend selection error.

    Uncaught, it ends the process and the interpreter prints ``code``, which
    holds the full diagnostic text. The short error code is ``error_code``.
    """

    def __init__(self, code: str, message: str, *, library: str) -> None:
        super().__init__(f"{code}: {message}")
        self.error_code = code
        self.message = message
        self.library = library
