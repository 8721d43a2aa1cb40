from __future__ import annotations

import json
import ssl
from urllib.request import Request, urlopen

import certifi

from core.exceptions import ExternalDependencyError


def fetch_catalog_tax_rates(url: str, timeout: int = 10) -> list[dict]:
    """Fetch the shop catalog's tax classes.

    Expected payload: [{"class": "reduced", "rate": "7"}, ...]
    Any network, HTTP or format problem is reported as ExternalDependencyError.
    """
    ctx = ssl.create_default_context(cafile=certifi.where())
    req = Request(url, headers={"User-Agent": "Comptoir/1.0", "Accept": "application/json"})

    try:
        with urlopen(req, timeout=timeout, context=ctx) as resp:
            payload = json.loads(resp.read())
    except Exception as e:
        raise ExternalDependencyError(f"Catalog connection error: {e}") from e

    if not isinstance(payload, list):
        raise ExternalDependencyError("Catalog payload is not a list of tax classes")

    rows = []
    for entry in payload:
        if not isinstance(entry, dict) or "rate" not in entry:
            raise ExternalDependencyError(f"Catalog entry without rate: {entry!r}")
        rows.append({"class": entry.get("class") or "", "rate": entry["rate"]})
    return rows
