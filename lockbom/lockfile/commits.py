"""Commit hashes hidden in the resolution URLs of JavaScript lockfiles."""
from urllib.parse import parse_qs
from urllib.parse import urlparse

from lockbom.core import cachedregexp

COMMIT_PATTERNS = [
    # ssh://, git://, git+ssh://, git+https://
    r'(?:^|.+@)(?:git(?:\+(?:ssh|https))?|ssh)://.+#(\w+)$',
    # https://....git#sha
    r'(?:^|.+@)https://.+\.git#(\w+)$',
    r'https://codeload\.github\.com(?:/[\w.-]+){2}/tar\.gz/(\w+)$',
    r'.+#commit[:=](\w+)$',
    # github:, gitlab:, bitbucket:
    r'^(?:github|gitlab|bitbucket):.+#(\w+)$',
]

GIT_HOSTS = ('bitbucket.org', 'github.com', 'gitlab.com')


def try_extract_commit(resolution: str) -> str:
    """Return the commit a resolution URL points at, or an empty string."""
    if not resolution:
        return ''

    for pattern in COMMIT_PATTERNS:
        match = cachedregexp.compile(pattern).search(resolution)
        if match:
            return match.group(1)

    try:
        url = urlparse(resolution)
    except ValueError:
        return ''

    if url.hostname in GIT_HOSTS:
        refs = parse_qs(url.query).get('ref')
        if refs:
            return refs[0]
        return url.fragment

    return ''
