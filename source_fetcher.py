# -*- coding: utf-8 -*-
"""
Remote Source Fetcher
Downloads a Python file to instrument, from any HTTP(S) URL.
GitHub "blob" page URLs are rewritten to raw.githubusercontent.com.
"""

import re
import time
from typing import Dict, Optional

import requests

from config import DEFAULT_CONFIG, HashpConfig

GITHUB_BLOB = re.compile(r'^https?://github\.com/([^/]+)/([^/]+)/blob/(.+)$')


class SourceFetchError(RuntimeError):
    """The remote source could not be retrieved."""


class SourceFetcher:
    """Fetches source text with retries and optional GitHub authentication"""

    def __init__(self, config: HashpConfig = DEFAULT_CONFIG, attempts: int = 3):
        self.timeout = config.fetch_timeout
        self.attempts = attempts
        self.headers: Dict[str, str] = {}
        # GitHub token for higher rate limits (optional)
        if config.github_token:
            self.headers['Authorization'] = f'token {config.github_token}'

    @staticmethod
    def raw_url(url: str) -> str:
        """Map a github.com blob page to its raw file."""
        match = GITHUB_BLOB.match(url)
        if match:
            owner, repo, rest = match.groups()
            return f"https://raw.githubusercontent.com/{owner}/{repo}/{rest}"
        return url

    def fetch(self, url: str) -> str:
        """
        Download `url` and return its text.

        Raises:
            SourceFetchError: after all attempts fail or on a non-retryable status
        """
        target = self.raw_url(url)
        last_error: Optional[str] = None

        for attempt in range(self.attempts):
            try:
                response = requests.get(target, headers=self.headers, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = str(e)
                print(f"Error fetching {target} (attempt {attempt + 1}/{self.attempts}): {e}")
            else:
                if response.ok:
                    return response.text
                last_error = f"HTTP {response.status_code}"
                print(f"Failed to fetch {target}: {response.status_code}")
                # Client errors will not fix themselves
                if 400 <= response.status_code < 500 and response.status_code != 429:
                    break
            if attempt + 1 < self.attempts:
                time.sleep(1.0 * (attempt + 1))

        raise SourceFetchError(f"could not fetch {target}: {last_error}")


def fetch_source(url: str, config: HashpConfig = DEFAULT_CONFIG) -> str:
    return SourceFetcher(config).fetch(url)
