from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, Optional, Set, Tuple, Type
import datetime
import os
import re
import time
import zipfile

from alive_progress import alive_bar  # type: ignore
import boto3  # type: ignore

from .command_parser import EXCLUDE_DEFAULT, INCLUDE_DEFAULT, ParsedCommand, parse
from .errors import FileSystemFailure, NameConflict
from .settings import ZipperSettings
from .switches import Switch


def format_bytes(n_bytes: int) -> str:
    """
    Convert bytes to a human-readable string
    """
    if n_bytes < 0:
        raise ValueError("n_bytes must be >= 0")

    if n_bytes < 1024:
        return f"{n_bytes:,} Bytes"
    elif n_bytes < 1024 ** 2:
        return f"{n_bytes / 1024:,.2f} KB"
    elif n_bytes < 1024 ** 3:
        return f"{n_bytes / 1024 ** 2:,.2f} MB"
    return f"{n_bytes / 1024 ** 3:,.2f} GB"


class ProgressPrinter:
    def __init__(self, verbose: bool = False):
        self._total_added_files = 0
        self._total_added_directories = 0
        self._total_added_size = 0
        self._verbose = verbose
        self._alive_bar: Optional[Callable] = None
        self._last_update_time = 0

    def set_alive_bar(self, bar: Callable) -> None:  # noqa
        self._alive_bar = bar

    def on_entry_added(self, arcname: str, size: int, is_dir: bool = False) -> None:
        if is_dir:
            self._total_added_directories += 1
        else:
            self._total_added_files += 1
            self._total_added_size += size
            if self._alive_bar is not None:
                self._alive_bar()

        if self._verbose and int(time.time()) - self._last_update_time > 30:
            print(f"{time.strftime('%Y-%m-%d %H:%M:%S', time.localtime())} {self.summary()}, last: {arcname}")
            self._last_update_time = int(time.time())

    def summary(self) -> str:
        return (
            f"Added {self._total_added_files:,} files, {self._total_added_directories:,} directories,"
            f" {format_bytes(self._total_added_size)}"
        )


def list_regular_files(path: str) -> FrozenSet[str]:
    """
    Names of the regular files directly inside a directory (non-recursive).
    """
    return frozenset(f for f in os.listdir(path) if os.path.isfile(os.path.join(path, f)))


def _strip_trailing_dot(name: str) -> str:
    # Some filesystems drop a trailing dot from file names, so "report." and "report" are treated alike
    if name.endswith("."):
        return name[:-1]
    return name


@lru_cache(maxsize=256)
def pattern_to_regex(pattern: str) -> "re.Pattern":
    """
    Translate a glob pattern into an anchored regex. Only two wildcards exist: `*` matches any run of characters,
    including an empty one, and `?` matches exactly one character. Everything else, dots included, is literal.
    """
    parts = []
    for char in _strip_trailing_dot(pattern):
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def matches_pattern(file_name: str, pattern: str) -> bool:
    return pattern_to_regex(pattern).fullmatch(_strip_trailing_dot(file_name)) is not None


def filter_by_patterns(file_names: Iterable[str], patterns: Iterable[str]) -> Set[str]:
    """
    The file names matching at least one of the patterns.
    """
    patterns = list(patterns)
    return {f for f in file_names if any(matches_pattern(f, p) for p in patterns)}


def filter_directory(path: str, include: FrozenSet[str], exclude: FrozenSet[str]) -> FrozenSet[str]:
    """
    Names of the regular files in a directory that match an include pattern and no exclude pattern.
    """
    file_names = list_regular_files(path)

    included = file_names if include == INCLUDE_DEFAULT else filter_by_patterns(file_names, include)
    excluded = EXCLUDE_DEFAULT if exclude == EXCLUDE_DEFAULT else filter_by_patterns(file_names, exclude)

    return frozenset(included - excluded)


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


@dataclass(frozen=True)
class ArchiveJob:
    source_dir: str
    dest_dir: str
    zip_file_path: str
    include: FrozenSet[str] = INCLUDE_DEFAULT
    exclude: FrozenSet[str] = EXCLUDE_DEFAULT
    deep_include: FrozenSet[str] = INCLUDE_DEFAULT
    deep_exclude: FrozenSet[str] = EXCLUDE_DEFAULT
    no_recurse: bool = False

    @property
    def zip_file_name(self) -> str:
        return os.path.basename(self.zip_file_path)

    @property
    def source_dir_name(self) -> str:
        return directory_name(self.source_dir)


ROOT_DIRECTORY_NAME = "root"


def directory_name(path: str) -> str:
    """
    Last component of a directory path. A filesystem root has none, so it is called "root".
    """
    return os.path.basename(os.path.normpath(path)) or ROOT_DIRECTORY_NAME


def build_default_zip_name(source_dir: str, epoch_millis: int, today: datetime.date) -> str:
    """
    Build a zip file name like project_1700000000000_Zipped-on_14-11-2023.zip
    """
    return f"{directory_name(source_dir)}_{epoch_millis}_Zipped-on_{today.strftime('%d-%m-%Y')}.zip"


def resolve_directory(value: Optional[str], cwd: str) -> str:
    """
    The directory named by a switch value, or the working directory if the value doesn't name a directory.
    """
    if value is not None and os.path.isdir(value):
        return os.path.abspath(value)
    return os.path.abspath(cwd)


def resolve_job(
    cmd: ParsedCommand,
    cwd: Optional[str] = None,
    clock: Callable[[], float] = time.time,
    today: Callable[[], datetime.date] = datetime.date.today
) -> ArchiveJob:
    """
    Work out the source and destination directories and the zip file path of a parsed command.
    """
    if cwd is None:
        cwd = os.getcwd()

    source_dir = resolve_directory(cmd.first_value(Switch.SOURCE_DIR), cwd)
    dest_dir = resolve_directory(cmd.first_value(Switch.DEST_DIR), cwd)

    zip_file_name = cmd.first_value(Switch.ZIP_FILE)
    if zip_file_name is not None and zip_file_name.strip():
        if os.path.exists(os.path.join(dest_dir, zip_file_name)):
            raise NameConflict(zip_file_name, dest_dir)
    else:
        zip_file_name = build_default_zip_name(source_dir, int(clock() * 1000), today())

    no_recurse = Switch.NO_RECURSE in cmd
    return ArchiveJob(
        source_dir=source_dir,
        dest_dir=dest_dir,
        zip_file_path=os.path.join(dest_dir, zip_file_name),
        include=cmd.get(Switch.INCLUDE, INCLUDE_DEFAULT),
        exclude=cmd.get(Switch.EXCLUDE, EXCLUDE_DEFAULT),
        deep_include=cmd.get(Switch.DEEP_INCLUDE, INCLUDE_DEFAULT),
        deep_exclude=cmd.get(Switch.DEEP_EXCLUDE, EXCLUDE_DEFAULT),
        no_recurse=no_recurse
    )


class DirectoryZipper:
    """
    Walks the source directory of a job and writes every eligible directory and file into its zip file.
    """

    def __init__(self, job: ArchiveJob, progress_callback: Optional[ProgressPrinter] = None, compress_level: int = 7):
        self._job = job
        self._progress_callback = progress_callback
        self._compress_level = compress_level
        self._source_dir = _normalize(job.source_dir)
        self._zip_file_path = _normalize(job.zip_file_path)
        # directory -> names of the files in it that go into the zip
        self._eligible_files: Dict[str, FrozenSet[str]] = {}

    def eligible_files(self, directory: str) -> FrozenSet[str]:
        key = _normalize(directory)
        if key not in self._eligible_files:
            if key == self._source_dir:
                include, exclude = self._job.include, self._job.exclude
            else:
                include, exclude = self._job.deep_include, self._job.deep_exclude
            self._eligible_files[key] = filter_directory(directory, include, exclude)
        return self._eligible_files[key]

    def skip(self, file_path: str) -> bool:
        """
        Whether a file stays out of the zip.
        """
        if _normalize(file_path) == self._zip_file_path:
            return True
        directory, file_name = os.path.split(file_path)
        return file_name not in self.eligible_files(directory)

    def _arcname(self, path: str) -> str:
        return os.path.relpath(path, self._job.source_dir).replace(os.sep, "/")

    def walk(self) -> Iterator[Tuple[str, str, bool]]:
        """
        Yield (absolute_path, arcname, is_dir) for every entry of the zip, directories before their contents.
        """
        def _raise(error: OSError) -> None:
            raise error

        for dirpath, dirnames, filenames in os.walk(self._job.source_dir, onerror=_raise):
            is_root = _normalize(dirpath) == self._source_dir

            if self._job.no_recurse:
                dirnames[:] = []
            else:
                dirnames[:] = sorted(d for d in dirnames if _normalize(os.path.join(dirpath, d)) != self._zip_file_path)

            if not is_root:
                yield dirpath, self._arcname(dirpath) + "/", True

            for file_name in sorted(filenames):
                file_path = os.path.join(dirpath, file_name)
                if not self.skip(file_path):
                    yield file_path, self._arcname(file_path), False

    def build(self) -> Dict[str, int]:
        """
        Write the zip file. Returns the size of every entry written, keyed by its name in the zip.
        """
        written: Dict[str, int] = {}
        try:
            with zipfile.ZipFile(
                self._job.zip_file_path, "w", zipfile.ZIP_DEFLATED,
                compresslevel=self._compress_level, strict_timestamps=False
            ) as zip_file:
                for path, arcname, is_dir in self.walk():
                    size = 0 if is_dir else os.stat(path).st_size
                    try:
                        zip_file.write(path, arcname=arcname)
                    except UnicodeEncodeError as e:
                        # Names that aren't valid in the filesystem encoding can't be stored in a zip
                        raise FileSystemFailure(f"Cannot store {path!r} in {self._job.zip_file_path}: {e}", path) from e
                    written[arcname] = size
                    if self._progress_callback is not None:
                        self._progress_callback.on_entry_added(arcname, size, is_dir)
        except (OSError, UnicodeEncodeError) as e:
            raise FileSystemFailure(f"Failed to write {self._job.zip_file_path}: {e}", self._job.zip_file_path) from e

        return written


def verify_archive(zip_file_path: str, expected_entries: Dict[str, int]) -> str:
    """
    Re-open a written zip and check it holds exactly the expected entries, with the expected sizes.
    """
    check_output: str = ""

    try:
        with zipfile.ZipFile(zip_file_path, "r") as zip_file:
            entries = {info.filename: info.file_size for info in zip_file.infolist()}
    except (OSError, zipfile.BadZipFile) as e:
        raise FileSystemFailure(f"Could not read back {zip_file_path}: {e}", zip_file_path) from e

    if len(entries) != len(expected_entries):
        raise FileSystemFailure(
            f"Number of entries in zip file {zip_file_path} ({len(entries)}) does not match number of"
            f" entries written ({len(expected_entries)}).",
            zip_file_path
        )
    check_output += f"Found {len(entries)} entries in zip file.\n"

    for arcname, size in expected_entries.items():
        if arcname not in entries:
            raise FileSystemFailure(f"Entry {arcname} is not present in zip file {zip_file_path}.", zip_file_path)

        if entries[arcname] != size:
            raise FileSystemFailure(
                f"Entry {arcname} has a different size in zip file ({format_bytes(entries[arcname])}) than"
                f" on disk ({format_bytes(size)}).",
                zip_file_path
            )

    total_size = sum(expected_entries.values())
    check_output += f"Total size of files in zip file: {format_bytes(total_size)} ({total_size:,} bytes).\n"
    check_output += "Checks completed successfully.\n"

    return check_output


class ZipRunner:

    def __init__(self, settings: Optional[ZipperSettings] = None):
        self._settings = settings
        self._command: Optional[ParsedCommand] = None

    def parse_arguments(self, args: Iterable[str]) -> None:
        """
        Parse a full zipp command line, keyword included:

        zipp -s /path/to/input -d /path/to/output -i *.py *.md -e test_* -nr
        """
        self._command = parse(list(args))

    @staticmethod
    def _get_s3_bucket(settings: ZipperSettings, boto_session_cls: Type[boto3.Session]):  # noqa
        settings.check_upload_settings()

        session = boto_session_cls(
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
        )

        s3 = session.resource(
            service_name="s3",
            endpoint_url=settings.s3_endpoint_url,
        )

        return s3.Bucket(settings.s3_bucket_name)

    def run(
        self,
        boto_session_cls: Optional[Type[boto3.Session]] = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], datetime.date] = datetime.date.today
    ) -> str:
        """
        Build the zip file of the parsed command and return its path.
        """
        assert self._command is not None

        settings = self._settings
        if settings is None:
            settings = ZipperSettings.from_environment()

        if boto_session_cls is None:
            boto_session_cls = boto3.Session

        # Check the bucket settings now, we don't want to fail after the zipping is done
        settings.check_upload_settings()

        job = resolve_job(self._command, clock=clock, today=today)
        progress_printer = ProgressPrinter(settings.verbose)
        zipper = DirectoryZipper(job, progress_printer, compress_level=settings.compress_level)

        with alive_bar(title_length=20, title="Zipping", total=0) as bar:
            progress_printer.set_alive_bar(bar)
            written = zipper.build()

        check_msg = verify_archive(job.zip_file_path, written)

        if settings.verbose:
            print(f"Zipped {job.source_dir} into {job.zip_file_path}")
            print(progress_printer.summary())
            print(check_msg)

        if settings.upload:
            bucket = self._get_s3_bucket(settings, boto_session_cls)
            with alive_bar(title_length=20, title="Uploading zip file", total=1) as bar:
                bucket.upload_file(job.zip_file_path, f"{job.source_dir_name}/{job.zip_file_name}")
                bar()

        return job.zip_file_path
