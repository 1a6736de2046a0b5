"Extract, validate and filter DocumentCloud URLs found in text files."

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import re
from urllib.parse import quote, urlsplit

logger = logging.getLogger(__name__)

# Only URLs pointing to these hosts are kept, compared case-sensitively:
ALLOWED_HOSTNAMES = frozenset(
    {
        "s3.documentcloud.org",
        "documentcloud.org",
        "www.documentcloud.org",
        "beta.documentcloud.org",
    }
)

URL_PATTERN = re.compile(r'https?://[^\s"]+', re.ASCII)

# HTML attribute leaked from scraped pages, glued to the end of some URLs.
HTML_TARGET_BLANK_SUFFIX = "target=&quot;_blank&quot;"

TSV_SUFFIX = ".tsv"
OUTPUT_FILE = "extracted_urls.txt"

PARSE_ERROR_POLICIES = ("skip", "abort")

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*:")
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_INVALID_HOST_CHARACTER = re.compile(r"[^A-Za-z0-9\-._~!$&'()*+,;=:\[\]<>\"%\x80-\U0010ffff]")
_INVALID_USERINFO_CHARACTER = re.compile(r"[^A-Za-z0-9\-._~!$&'()*+,;=:%@\x80-\U0010ffff]")
_PORT = re.compile(r":[0-9]*")

# Characters left as is when serializing, everything else is percent-escaped.
_PATH_SAFE = "/%:@!$&'()*+,;=[]~"
_NETLOC_SAFE = "!$&'()*+,;=:[]<>\"%@~"


class InvalidURL(ValueError):
    """The given string is not an absolute URL."""


class FatalURLError(InvalidURL):
    """An URL that passed validation could not be parsed again."""


def avoid_surrogates(s):
    """Drop surrogates from the given string.

    Files are read with the surrogateescape error handler, so lines
    containing invalid UTF-8 carry surrogates that can't be logged as is.
    """
    return s.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def _escape(s, safe):
    return quote(s.encode("utf-8", "surrogateescape"), safe=safe)


@dataclass(frozen=True)
class ParsedURL:
    scheme: str
    netloc: str
    path: str = ""
    query: str = ""
    force_query: bool = False

    @classmethod
    def from_string(cls, text: str) -> "ParsedURL":
        """Parse text as an absolute request URI, like in an HTTP request line.

        The fragment is not split off: a "#" belongs to the path or the
        query. Raises InvalidURL if text has no scheme, no host, or
        contains characters not allowed where they are.
        """
        if _CONTROL_CHARACTERS.search(text):
            raise InvalidURL("invalid control character in URL")
        if not _SCHEME.match(text):
            raise InvalidURL("missing protocol scheme")
        try:
            parts = urlsplit(text, allow_fragments=False)
        except ValueError as err:
            raise InvalidURL(str(err)) from err
        if not text[len(parts.scheme) + 1 :].startswith("//"):
            raise InvalidURL("not an absolute URL")
        userinfo, _, host = parts.netloc.rpartition("@")
        if _INVALID_USERINFO_CHARACTER.search(userinfo):
            raise InvalidURL(f"invalid userinfo in {avoid_surrogates(text)!r}")
        _check_host(host)
        if _BAD_ESCAPE.search(parts.path):
            raise InvalidURL(f"invalid URL escape in path {avoid_surrogates(parts.path)!r}")
        return cls(
            scheme=parts.scheme,
            netloc=parts.netloc,
            path=parts.path,
            query=parts.query,
            force_query=not parts.query and text.endswith("?"),
        )

    @property
    def hostname(self) -> str:
        """The host, without port nor IPv6 brackets, case preserved."""
        host = self.netloc.rpartition("@")[2]
        if host.startswith("["):
            return host[1 : host.index("]")]
        if ":" in host and _PORT.fullmatch(host[host.rindex(":") :]):
            host = host[: host.rindex(":")]
        return host

    def __str__(self):
        url = f"{self.scheme}://{_escape(self.netloc, _NETLOC_SAFE)}"
        url += _escape(self.path, _PATH_SAFE)
        if self.query or self.force_query:
            url += "?" + self.query
        return url


def _check_host(host):
    if host.startswith("["):
        closing = host.find("]")
        if closing == -1:
            raise InvalidURL("missing ']' in host")
        port = host[closing + 1 :]
        if port and not _PORT.fullmatch(port):
            raise InvalidURL(f"invalid port {port!r} after host")
        return
    if ":" in host:
        host, port = host[: host.rindex(":")], host[host.rindex(":") :]
        if not _PORT.fullmatch(port):
            raise InvalidURL(f"invalid port {avoid_surrogates(port)!r} after host")
    if not host:
        raise InvalidURL("missing host")
    if _INVALID_HOST_CHARACTER.search(host):
        raise InvalidURL(f"invalid character in host name {avoid_surrogates(host)!r}")
    if _BAD_ESCAPE.search(host):
        raise InvalidURL(f"invalid URL escape in host {avoid_surrogates(host)!r}")


def is_url_valid(url: str) -> bool:
    try:
        ParsedURL.from_string(url)
    except InvalidURL:
        return False
    return True


def get_hostname(url: str) -> str:
    """Get the hostname from the given URL, splitting its fragment off first.

    This is stricter than ParsedURL.from_string on the part following a
    "#", so an URL with a bad escape in its fragment is valid but has no
    hostname.
    """
    url, _, fragment = url.partition("#")
    if _BAD_ESCAPE.search(fragment):
        raise InvalidURL(f"invalid URL escape in fragment {avoid_surrogates(fragment)!r}")
    return ParsedURL.from_string(url).hostname


def extract_candidates(line: str) -> list[str]:
    """All non-overlapping URL-looking substrings of line, in order."""
    return URL_PATTERN.findall(line)


def extract_urls_from_file(path: Path) -> list[str]:
    """Extract the valid URLs of a text file, in their canonical form.

    URLs are searched line by line, so an URL split across two lines is
    never found. Invalid candidates are logged and skipped. Errors while
    opening or reading the file propagate.
    """
    urls = []
    with open(path, encoding="UTF-8", errors="surrogateescape") as file:
        for line in file:
            for candidate in extract_candidates(line):
                try:
                    url = ParsedURL.from_string(candidate)
                except InvalidURL as err:
                    logger.warning(
                        "Invalid URL skipped: %s (%s)", avoid_surrogates(candidate), err
                    )
                    continue
                urls.append(str(url))
    logger.debug("%s: %d URLs found", path, len(urls))
    return urls


def list_tsv_files(root: Path) -> list[Path]:
    """Recursively list files named *.tsv under root, in sorted walk order.

    Raises OSError if root, or any directory under it, can't be read.
    """

    def _raise(err):
        raise err

    tsv_files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        tsv_files.extend(
            Path(dirpath) / filename
            for filename in sorted(filenames)
            if filename.endswith(TSV_SUFFIX)
        )
    return tsv_files


def remove_duplicates(urls: list[str]) -> list[str]:
    """Remove exact duplicates, keeping the first occurrence of each URL."""
    seen = set()
    unique = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            unique.append(url)
    return unique


def clean_urls(
    urls: list[str], strip_suffix: bool = False, on_parse_error: str = "skip"
) -> list[str]:
    """Keep the valid URLs whose hostname is in ALLOWED_HOSTNAMES.

    With strip_suffix, HTML_TARGET_BLANK_SUFFIX is removed from the kept
    URLs, the hostname being checked on the URL as given.

    on_parse_error tells what to do when the hostname can't be extracted
    from a valid URL: "skip" logs and drops it, "abort" raises FatalURLError.
    """
    if on_parse_error not in PARSE_ERROR_POLICIES:
        raise ValueError(
            f"on_parse_error should be one of {PARSE_ERROR_POLICIES}, "
            f"not {on_parse_error!r}."
        )
    cleaned = []
    for url in urls:
        if not is_url_valid(url):
            logger.info("Invalid URL skipped: %s", avoid_surrogates(url))
            continue
        try:
            hostname = get_hostname(url)
        except InvalidURL as err:
            if on_parse_error == "abort":
                raise FatalURLError(
                    f"Can't get hostname of {avoid_surrogates(url)!r}: {err}"
                ) from err
            logger.error(
                "Can't get hostname, URL skipped: %s (%s)", avoid_surrogates(url), err
            )
            continue
        if hostname not in ALLOWED_HOSTNAMES:
            logger.info("Invalid domain skipped: %s", avoid_surrogates(hostname))
            continue
        if strip_suffix:
            url = url.removesuffix(HTML_TARGET_BLANK_SUFFIX)
        logger.debug("Kept %s", avoid_surrogates(url))
        cleaned.append(url)
    return cleaned


def quote_url(url: str) -> str:
    """Decorate an URL to be pasted in an array literal, like: "url","""
    return f'"{url}",'


def unquote_url(line: str) -> str:
    """Reverse of quote_url, lines not decorated are returned as is."""
    if len(line) >= 3 and line.startswith('"') and line.endswith('",'):
        return line[1:-2]
    return line


def quote_urls(urls: list[str]) -> list[str]:
    return [quote_url(url) for url in urls]


def write_urls_file(urls: list[str], path: Path) -> None:
    """Write one URL per line, truncating path."""
    with open(path, "w", encoding="UTF-8", errors="surrogateescape", newline="\n") as f:
        for url in urls:
            f.write(url + "\n")


def read_urls_file(path: Path) -> list[str]:
    """Read back a file written by write_urls_file."""
    with open(path, encoding="UTF-8", errors="surrogateescape", newline="\n") as f:
        return [line.removesuffix("\n") for line in f]
