"""
Exceptions raised while parsing a zipp command and building its archive.
"""
from typing import Iterable, Optional


class NotAnInvocation(Exception):
    """
    The tokens are not a zipp command at all. Callers treat this as "nothing to do", not as a failure.
    """


class ZipperError(RuntimeError):
    """Base class for every failure of a zipp run."""


class CommandError(ZipperError, ValueError):
    """Base class for failures detected while parsing the command tokens."""


class InvalidSwitch(CommandError):
    def __init__(self, token: str, long_forms: Iterable[str], short_forms: Iterable[str]):
        self.token = token
        super().__init__(
            f"Invalid switch [{token}] must be one of {sorted(long_forms)} or of {sorted(short_forms)}"
        )


class DuplicateSwitch(CommandError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Duplicate use of switch: {token}")


class MissingSwitch(CommandError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Argument [{token}] is not preceded by a switch")


class NoRecurseTakesNoArguments(CommandError):
    def __init__(self, token: str, switch_form: str):
        self.token = token
        super().__init__(f"The switch {switch_form} does NOT take any arguments, got [{token}]")


class TooManyArguments(CommandError):
    def __init__(self, token: str, switch_name: str):
        self.token = token
        super().__init__(f"Invalid argument [{token}] -- switch {switch_name} can NOT take multiple arguments")


class PathNotAllowed(CommandError):
    def __init__(self, token: str, switch_name: str):
        self.token = token
        super().__init__(f"Invalid argument {token} -- the switch {switch_name} takes file names without the path info")


class NameConflict(ZipperError):
    def __init__(self, file_name: str, directory: str):
        self.file_name = file_name
        self.directory = directory
        super().__init__(f"Filename {file_name} is taken-- a file by that name already exists in {directory}.")


class FileSystemFailure(ZipperError):
    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class SettingsError(ZipperError):
    """An environment variable holds a value the run cannot use."""
