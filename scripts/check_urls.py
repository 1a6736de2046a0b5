"""Script to run a quick consistency check on extracted_urls.txt:

- Are all lines proper URLs?
- Are all URLs on an allowed DocumentCloud host?
- Are there duplicates?
- Are all lines decorated the same way?
"""

import argparse
import sys
from pathlib import Path

from documentcloud_url import (
    ALLOWED_HOSTNAMES,
    OUTPUT_FILE,
    InvalidURL,
    get_hostname,
    read_urls_file,
    unquote_url,
)
import validators


def err(*args, **kwargs):
    kwargs["file"] = sys.stderr
    print(*args, **kwargs)


def check_allowed_hostnames():
    ok = True
    for hostname in sorted(ALLOWED_HOSTNAMES):
        if not validators.domain(hostname):
            err(f"ALLOWED_HOSTNAMES: {hostname!r} does not looks like a domain name.")
            ok = False
    return ok


def check_is_valid_url(file, lineno, url):
    if not validators.url(url):
        err(f"{file}:{lineno}: {url!r} does not looks like an URL.")
        return False
    return True


def check_is_allowed_host(file, lineno, url):
    try:
        hostname = get_hostname(url)
    except InvalidURL as error:
        err(f"{file}:{lineno}: Can't get hostname of {url!r}: {error}")
        return False
    if hostname not in ALLOWED_HOSTNAMES:
        err(f"{file}:{lineno}: {hostname!r} is not an allowed host.")
        return False
    return True


def check_decoration(file, lineno, line, quoted):
    if (unquote_url(line) != line) != quoted:
        expected = "quoted" if quoted else "bare"
        err(f"{file}:{lineno}: {line!r} is not {expected} like the first line.")
        return False
    return True


class DuplicateChecker:
    def __init__(self):
        self.seen = {}

    def __call__(self, file, lineno, url):
        """Checks if the given URL has already been seen."""
        if url in self.seen:
            err(
                f"{file}:{lineno}: Duplicate URL {url!r} "
                f"(already seen at line {self.seen[url]})"
            )
            return False
        self.seen[url] = lineno
        return True


def check_file(file: Path) -> bool:
    """Run all checks on the given file, returns True if no problem was found."""
    lines = read_urls_file(file)
    if not lines:
        return True
    quoted = unquote_url(lines[0]) != lines[0]
    check_duplicate = DuplicateChecker()
    ok = True
    for lineno, line in enumerate(lines, start=1):
        url = unquote_url(line)
        results = [
            check_decoration(file, lineno, line, quoted),
            check_is_valid_url(file, lineno, url),
            check_is_allowed_host(file, lineno, url),
            check_duplicate(file, lineno, url),
        ]
        ok = ok and all(results)
    return ok


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("file", type=Path, nargs="?", default=Path(OUTPUT_FILE))
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    results = [check_allowed_hostnames(), check_file(args.file)]
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
