#!/usr/bin/env python3
"""Walk a running server through login, rotation and replay of a refresh token."""
import argparse
import json
import random
import string
from pathlib import Path
from typing import Any, Optional

import requests


def _rand_suffix(length: int = 8) -> str:
    return ''.join(random.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def _safe_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _step(name: str, path: str, status: int, expected: int, body: Optional[str] = None) -> dict:
    ok = status == expected
    return {
        'step': name,
        'path': path,
        'status': status,
        'expected': expected,
        'ok': ok,
        'error': (body or '')[:500] if not ok else None,
    }


def _post(session: requests.Session, base_url: str, path: str, payload: dict) -> requests.Response:
    return session.post(f"{base_url}{path}", json=payload)


def run(base_url: str, session: requests.Session) -> list[dict]:
    results = []
    email = f"smoke-{_rand_suffix()}@uaic.ro"
    password = f"pw-{_rand_suffix(12)}"

    register = _post(session, base_url, '/register', {'email': email, 'password': password})
    results.append(_step('register', '/register', register.status_code, 201, register.text))

    login = _post(session, base_url, '/login', {'email': email, 'password': password})
    results.append(_step('login', '/login', login.status_code, 200, login.text))
    first = (_safe_json(login) or {}).get('refreshToken')
    if not first:
        return results

    rotated = _post(session, base_url, '/refresh', {'refreshToken': first})
    results.append(_step('rotate', '/refresh', rotated.status_code, 200, rotated.text))
    second = (_safe_json(rotated) or {}).get('refreshToken')

    replay = _post(session, base_url, '/refresh', {'refreshToken': first})
    results.append(_step('replay', '/refresh', replay.status_code, 401, replay.text))

    if second:
        killed = _post(session, base_url, '/refresh', {'refreshToken': second})
        results.append(_step('family_revoked', '/refresh', killed.status_code, 401, killed.text))

    unknown = _post(session, base_url, '/refresh', {'refreshToken': _rand_suffix(32)})
    results.append(_step('unknown_token', '/refresh', unknown.status_code, 401, unknown.text))
    return results


def main() -> int:
    parser = argparse.ArgumentParser(description='Refresh-token rotation smoke test')
    parser.add_argument('--base-url', default='http://127.0.0.1:8000')
    parser.add_argument('--output', default='reports/session_smoke.json')
    args = parser.parse_args()

    base_url = args.base_url.rstrip('/')
    results = run(base_url, requests.Session())

    total = len(results)
    passed = len([item for item in results if item['ok']])
    failed = total - passed
    summary = {
        'base_url': base_url,
        'total': total,
        'passed': passed,
        'failed': failed,
        'results': results,
    }

    if args.output:
        output_path = Path(args.output)
        if not output_path.is_absolute():
            output_path = Path(__file__).resolve().parents[1] / output_path
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(summary, ensure_ascii=False, indent=2), encoding='utf-8')

    print(f"Total: {total}, Passed: {passed}, Failed: {failed}")
    return 0 if failed == 0 else 2


if __name__ == '__main__':
    raise SystemExit(main())
