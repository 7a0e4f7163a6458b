"""Fetch configuration using Pydantic.

Holds the NVD endpoint, the optional API key, and the paging and retry
limits.  Values come from an optional YAML file with the ``NVD_API_KEY``
environment variable taking precedence for the credential.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

NVD_CVE_API_URL = "https://services.nvd.nist.gov/rest/json/cves/2.0/"
MAX_RESULTS_PER_PAGE = 2000
CONFIG_FILENAMES = ("nvdgrab.yaml", "nvdgrab.yml")


class FetchConfig(BaseModel):
    """Validated settings for talking to the NVD CVE API.

    Example YAML::

        api_key: 00000000-0000-0000-0000-000000000000
        extra_query: "noRejected&"
        rate_limit_cooldown: 31

    Attributes:
        api_url: Base URL of the CVE API.
        api_key: Optional NVD API key.  Without one the API allows 5
            requests per rolling 30 seconds instead of 50.
        api_key_header: Header name the key is sent under.
        results_per_page: Page size requested (the API caps it at 2000).
        extra_query: Raw query-string fragment spliced in front of the
            date/paging parameters of every request.  Always ends with ``&``
            when non-empty.
        rate_limit_cooldown: Seconds to wait after a throttled request.
        max_rate_limit_waits: Consecutive cooldowns tolerated for a single
            page before giving up.
        max_attempts: Attempts per request on transport errors or
            unexpected statuses.
        connect_timeout: Connect timeout in seconds.
        read_timeout: Read timeout in seconds.
        user_agent: ``User-Agent`` header value.
    """

    api_url: str = NVD_CVE_API_URL
    api_key: str | None = None
    api_key_header: str = "apiKey"
    results_per_page: int = Field(default=MAX_RESULTS_PER_PAGE, ge=1, le=MAX_RESULTS_PER_PAGE)
    extra_query: str = ""
    rate_limit_cooldown: float = Field(
        default=31.0,
        ge=30.0,
        description="The API requires at least 30 seconds before retrying a throttled request",
    )
    max_rate_limit_waits: int = Field(default=40, ge=1)
    max_attempts: int = Field(default=3, ge=1, le=10)
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=120.0, gt=0)
    user_agent: str = "nvdgrab/0.3 (+https://nvd.nist.gov/developers/vulnerabilities)"

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, v: Any) -> str | None:
        """Treat an empty or whitespace-only key as no key."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("extra_query", mode="before")
    @classmethod
    def _normalize_extra_query(cls, v: Any) -> str:
        """Strip a leading ``?`` and make sure the fragment ends with ``&``."""
        if v is None:
            return ""
        v = str(v).strip().lstrip("?")
        if v and not v.endswith("&"):
            v += "&"
        return v

    @property
    def authenticated(self) -> bool:
        return self.api_key is not None

    @property
    def timeout(self) -> tuple[float, float]:
        """``(connect, read)`` timeout tuple for ``requests``."""
        return (self.connect_timeout, self.read_timeout)


def find_config() -> Path | None:
    """Find the config file.

    ``NVDGRAB_CONFIG`` wins when set; otherwise the first of
    ``nvdgrab.yaml`` / ``nvdgrab.yml`` in the working directory.

    Returns:
        Path to the config file, or None if there is none.
    """
    env_path = os.environ.get("NVDGRAB_CONFIG")
    if env_path:
        return Path(env_path)
    for name in CONFIG_FILENAMES:
        if Path(name).exists():
            return Path(name)
    return None


def load_config(path: Path | None = None, **overrides: Any) -> FetchConfig:
    """Load the fetch configuration.

    Args:
        path: YAML config file.  Defaults to :func:`find_config`.
        **overrides: Field values that take precedence over the file
            (e.g. ``extra_query`` from the command line).  None values
            are ignored.

    Returns:
        Validated ``FetchConfig`` instance.

    Raises:
        FileNotFoundError: if an explicitly configured file doesn't exist.
        ValueError: if the file is not valid YAML or not a mapping.
        pydantic.ValidationError: if content fails validation.
    """
    if path is None:
        path = find_config()

    raw: dict[str, Any] = {}
    if path is not None:
        content = path.read_text(encoding="utf-8")
        try:
            loaded = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        raw.update(loaded)

    env_key = os.environ.get("NVD_API_KEY")
    if env_key:
        raw["api_key"] = env_key

    raw.update({k: v for k, v in overrides.items() if v is not None})
    return FetchConfig.model_validate(raw)
