# Container HEALTHCHECK probe for the hello server
import os
import sys

import requests

EXPECTED_TEXT = 'Hello! World'


def default_url():
    url = os.getenv('PROBE_URL')
    if url:
        return url
    return f"http://127.0.0.1:{os.getenv('PORT', '8080')}/"


def probe(url, timeout=3.0):
    """Return True when the server answers 200 with the hello page"""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        print(f"Probe failed ({url}): {e}", file=sys.stderr)
        return False

    if response.status_code != 200 or EXPECTED_TEXT not in response.text:
        print(f"Probe got unexpected response ({url}): {response.status_code}", file=sys.stderr)
        return False
    return True


def main():
    sys.exit(0 if probe(default_url()) else 1)


if __name__ == '__main__':
    main()
