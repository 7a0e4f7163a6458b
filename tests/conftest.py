"""Shared fixtures for the nvdgrab test suite."""

import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from nvdgrab.config import FetchConfig


@pytest.fixture
def sample_vuln() -> dict[str, Any]:
    """A CVE API 2.0 vulnerability entry with v3.1 and v2 metrics."""
    return {
        "cve": {
            "id": "CVE-2021-44228",
            "sourceIdentifier": "security@apache.org",
            "published": "2021-12-10T10:15:09.143",
            "lastModified": "2023-11-07T03:39:36.747",
            "vulnStatus": "Analyzed",
            "descriptions": [{"lang": "en", "value": 'Apache Log4j2 "JNDI" features do not protect'}],
            "metrics": {
                "cvssMetricV31": [
                    {
                        "source": "nvd@nist.gov",
                        "type": "Primary",
                        "cvssData": {
                            "version": "3.1",
                            "attackVector": "NETWORK",
                            "baseScore": 10.0,
                            "baseSeverity": "CRITICAL",
                        },
                    }
                ],
                "cvssMetricV2": [
                    {
                        "source": "nvd@nist.gov",
                        "type": "Primary",
                        "cvssData": {"version": "2.0", "accessVector": "NETWORK", "baseScore": 9.3},
                        "baseSeverity": "HIGH",
                    }
                ],
            },
        }
    }


@pytest.fixture
def minimal_vuln() -> dict[str, Any]:
    """A vulnerability entry without any metrics."""
    return {
        "cve": {
            "id": "CVE-2020-0001",
            "sourceIdentifier": "x",
            "published": "2020-03-01T00:00:00",
            "lastModified": "2020-03-02T00:00:00",
            "vulnStatus": "Analyzed",
        }
    }


@pytest.fixture
def config() -> FetchConfig:
    return FetchConfig()


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_response(status: int = 200, payload: Any = None, bad_json: bool = False) -> MagicMock:
    """Build a mock ``requests.Response``."""
    resp = MagicMock()
    resp.status_code = status
    if bad_json:
        resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
    else:
        resp.json.return_value = payload
    return resp


def make_page(vulns: list[dict[str, Any]], total: int | None = None) -> dict[str, Any]:
    """Build a CVE API page body."""
    return {
        "resultsPerPage": len(vulns),
        "startIndex": 0,
        "totalResults": len(vulns) if total is None else total,
        "format": "NVD_CVE",
        "version": "2.0",
        "vulnerabilities": vulns,
    }


def make_session(*responses: MagicMock) -> MagicMock:
    """Build a mock session whose ``get`` returns ``responses`` in order."""
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session
