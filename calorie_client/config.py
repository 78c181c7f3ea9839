from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


class ConfigurationError(ValueError):
    pass


REFRESH_ROTATION_POLICIES = ("keep_if_absent", "require")


@dataclass(frozen=True)
class AppSettings:
    base_url: str
    refresh_path: str
    sign_in_path: str
    sign_in_location: str
    verify_email_location: str
    timeout_seconds: int
    credential_store_path: str
    refresh_on_forbidden: bool
    refresh_rotation: str
    log_level: str

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        base_url = os.getenv("CALORIE_BASE_URL", "").strip().rstrip("/")
        refresh_path = os.getenv("CALORIE_REFRESH_PATH", "/auth/refresh-token").strip()
        sign_in_path = os.getenv("CALORIE_SIGN_IN_PATH", "/auth/sign-in").strip()
        sign_in_location = os.getenv("CALORIE_SIGN_IN_LOCATION", "/sign-in").strip()
        verify_email_location = os.getenv("CALORIE_VERIFY_EMAIL_LOCATION", "/verify-email").strip()

        timeout_seconds = int(os.getenv("CALORIE_TIMEOUT_SECONDS", "30"))

        default_store_path = os.path.join(
            os.getenv("LOCALAPPDATA", os.path.expanduser("~")),
            ".calorie_client",
            "credentials.bin",
        )
        credential_store_path = os.getenv("CALORIE_CREDENTIAL_STORE_PATH", default_store_path)
        refresh_on_forbidden = _parse_bool(os.getenv("CALORIE_REFRESH_ON_FORBIDDEN", "false"))
        refresh_rotation = os.getenv("CALORIE_REFRESH_ROTATION", "keep_if_absent").strip().lower()
        log_level = os.getenv("CALORIE_LOG_LEVEL", "INFO").strip().upper()

        settings = AppSettings(
            base_url=base_url,
            refresh_path=refresh_path,
            sign_in_path=sign_in_path,
            sign_in_location=sign_in_location,
            verify_email_location=verify_email_location,
            timeout_seconds=timeout_seconds,
            credential_store_path=credential_store_path,
            refresh_on_forbidden=refresh_on_forbidden,
            refresh_rotation=refresh_rotation,
            log_level=log_level,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigurationError("Missing required settings: CALORIE_BASE_URL")

        path_fields = {
            "CALORIE_REFRESH_PATH": self.refresh_path,
            "CALORIE_SIGN_IN_PATH": self.sign_in_path,
            "CALORIE_SIGN_IN_LOCATION": self.sign_in_location,
            "CALORIE_VERIFY_EMAIL_LOCATION": self.verify_email_location,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.timeout_seconds <= 0:
            raise ConfigurationError("CALORIE_TIMEOUT_SECONDS must be greater than 0")

        if not self.credential_store_path:
            raise ConfigurationError("CALORIE_CREDENTIAL_STORE_PATH must not be empty")

        if self.refresh_rotation not in REFRESH_ROTATION_POLICIES:
            raise ConfigurationError(
                "CALORIE_REFRESH_ROTATION must be one of: " + ", ".join(REFRESH_ROTATION_POLICIES)
            )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    for candidate in _candidate_env_files(file_name):
        _load_env_file(candidate)


def _candidate_env_files(file_name: str) -> list[Path]:
    explicit = os.getenv("CALORIE_ENV_FILE", "").strip()
    candidates = [Path(explicit).expanduser()] if explicit else []
    candidates += [Path.cwd() / file_name, Path(__file__).resolve().parent.parent / file_name]

    # cwd is usually the project root; load each file once
    by_location: dict[str, Path] = {}
    for path in candidates:
        by_location.setdefault(str(path.resolve()), path)
    return list(by_location.values())


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return

    try:
        with path.open("r", encoding="utf-8") as env_file:
            for raw_line in env_file:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        return
