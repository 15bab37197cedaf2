from dataclasses import dataclass
from typing import Mapping, Optional
import os

from .errors import SettingsError

ENV_PREFIX = "DIRZIPPER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}


def _read_flag(environ: Mapping[str, str], name: str) -> bool:
    raw = environ.get(ENV_PREFIX + name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise SettingsError(f"{ENV_PREFIX}{name} must be one of {sorted(_TRUE_VALUES | (_FALSE_VALUES - {''}))}.")


@dataclass(frozen=True)
class ZipperSettings:
    compress_level: int = 7
    verbose: bool = False
    upload: bool = False
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_bucket_name: str = ""
    s3_endpoint_url: str = ""

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "ZipperSettings":
        """
        Load settings from DIRZIPPER_* environment variables.
        """
        if environ is None:
            environ = os.environ

        raw_level = environ.get(ENV_PREFIX + "COMPRESS_LEVEL", "").strip()
        compress_level = cls.compress_level
        if raw_level:
            try:
                compress_level = int(raw_level)
            except ValueError:
                raise SettingsError(f"{ENV_PREFIX}COMPRESS_LEVEL must be an integer, got [{raw_level}].")
        if not 0 <= compress_level <= 9:
            raise SettingsError(f"{ENV_PREFIX}COMPRESS_LEVEL must be between 0 and 9, got {compress_level}.")

        return cls(
            compress_level=compress_level,
            verbose=_read_flag(environ, "VERBOSE"),
            upload=_read_flag(environ, "UPLOAD"),
            s3_access_key=environ.get(ENV_PREFIX + "S3_ACCESS_KEY", ""),
            s3_secret_key=environ.get(ENV_PREFIX + "S3_SECRET_KEY", ""),
            s3_bucket_name=environ.get(ENV_PREFIX + "S3_BUCKET_NAME", ""),
            s3_endpoint_url=environ.get(ENV_PREFIX + "S3_ENDPOINT_URL", ""),
        )

    def check_upload_settings(self) -> None:
        """
        Fail early if upload is enabled but the S3 settings are incomplete.
        """
        if not self.upload:
            return

        if len(self.s3_access_key) == 0:
            raise SettingsError(f"{ENV_PREFIX}S3_ACCESS_KEY must be set to upload.")

        if len(self.s3_secret_key) == 0:
            raise SettingsError(f"{ENV_PREFIX}S3_SECRET_KEY must be set to upload.")

        if len(self.s3_bucket_name) == 0:
            raise SettingsError(f"{ENV_PREFIX}S3_BUCKET_NAME must be set to upload.")

        if len(self.s3_endpoint_url) == 0:
            raise SettingsError(f"{ENV_PREFIX}S3_ENDPOINT_URL must be set to upload.")
