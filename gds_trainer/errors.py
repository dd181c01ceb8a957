"""Failures the interpreter renders back to the trainee as terminal text."""


class TerminalError(Exception):
    """Base class. ``str(exc)`` is the exact text shown on the terminal."""


class CommandSyntaxError(TerminalError):
    """The command word was recognised but the rest did not match its grammar."""

    def __init__(self, example: str):
        self.example = example
        super().__init__(f"INVALID FORMAT - EXPECTED: {example}")


class UnknownCommandError(TerminalError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"UNKNOWN COMMAND: {command}. ENTER HE FOR HELP")


class PreconditionError(TerminalError):
    """Grammar matched but the session is not in a state that allows the command."""
