from __future__ import annotations

import argparse
import importlib.util
import sys

import httpx

from app.core.config import get_settings


REQUIRED_SETTINGS = ("composio_api_key", "llm_api_key")
REQUIRED_MODULES = ("fastapi", "httpx", "pydantic_settings")


def _missing_settings(settings: object) -> list[str]:
    missing: list[str] = []
    for name in REQUIRED_SETTINGS:
        value = str(getattr(settings, name, "") or "").strip()
        if not value:
            missing.append(name.upper())
    return missing


def _missing_modules(modules: tuple[str, ...] = REQUIRED_MODULES) -> list[str]:
    return [name for name in modules if importlib.util.find_spec(name) is None]


def _is_reachable_status(code: int) -> bool:
    # 4xx still proves the host answered.
    return 200 <= code < 500


def _probe(url: str, timeout: float) -> str | None:
    try:
        response = httpx.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        return type(exc).__name__
    if not _is_reachable_status(int(response.status_code)):
        return f"http_{response.status_code}"
    return None


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify backend configuration and dependencies")
    parser.add_argument("--check-network", action="store_true", help="Probe upstream base URLs")
    parser.add_argument("--timeout-sec", type=float, default=5.0, help="HTTP timeout in seconds")
    args = parser.parse_args()

    settings = get_settings()
    failed = False

    print("[verify-setup]")
    missing_settings = _missing_settings(settings)
    for name in REQUIRED_SETTINGS:
        status = "missing" if name.upper() in missing_settings else "set"
        print(f"- {name.upper()}: {status}")
    if missing_settings:
        failed = True
        print("  -> copy backend/.env.example to backend/.env and fill in your API keys")

    missing_modules = _missing_modules()
    for name in REQUIRED_MODULES:
        print(f"- module {name}: {'missing' if name in missing_modules else 'OK'}")
    if missing_modules:
        failed = True
        print("  -> run: pip install -e .")

    if args.check_network:
        for label, url in (("composio", settings.composio_base_url), ("llm", settings.llm_base_url)):
            error = _probe(url, float(args.timeout_sec))
            print(f"- {label} reachable: {'OK' if error is None else f'FAIL ({error})'}")
            failed = failed or error is not None

    print(f"- verdict: {'FAIL' if failed else 'PASS'}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
