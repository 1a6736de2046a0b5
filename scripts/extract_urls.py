"""Extract DocumentCloud URLs from all the .tsv files of a directory tree.

The URLs are deduplicated, filtered on ALLOWED_HOSTNAMES, decorated like
"url", to be pasted in an array literal, and written one per line to
extracted_urls.txt.
"""

import argparse
import logging
from pathlib import Path
import sys

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from documentcloud_url import (
    OUTPUT_FILE,
    PARSE_ERROR_POLICIES,
    FatalURLError,
    clean_urls,
    extract_urls_from_file,
    list_tsv_files,
    quote_urls,
    remove_duplicates,
    write_urls_file,
)

logger = logging.getLogger("extract_urls")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "root",
        type=Path,
        nargs="?",
        default=Path.cwd(),
        help="Directory to search .tsv files in (default: current directory).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="File to write the extracted URLs to.",
        default=Path(OUTPUT_FILE),
    )
    parser.add_argument(
        "--no-quotes",
        action="store_false",
        dest="quotes",
        help='Write bare URLs instead of "url", lines.',
    )
    parser.add_argument(
        "--strip-target-blank",
        action="store_true",
        help='Remove a trailing target=&quot;_blank&quot; from kept URLs.',
    )
    parser.add_argument(
        "--on-parse-error",
        choices=PARSE_ERROR_POLICIES,
        default="skip",
        help="What to do when the hostname of a valid URL can't be parsed: "
        "skip the URL, or abort the whole run.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Verbosity: use -v to log every kept URL.",
    )
    parser.add_argument(
        "-s", "--silent", action="store_true", help="Disable progress bar"
    )
    args = parser.parse_args(argv)
    args.verbose = min(args.verbose, 1)
    return args


def extract_all(tsv_files: list[Path], silent: bool = False) -> list[str]:
    """Extract URLs from each file in turn, skipping unreadable files."""
    urls = []
    for tsv_file in tqdm(tsv_files, unit="file", disable=silent):
        logger.info("Extracting URLs from file: %s", tsv_file)
        try:
            urls.extend(extract_urls_from_file(tsv_file))
        except OSError as err:
            logger.error("Error extracting URLs from file %s: %s", tsv_file, err)
    return urls


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=[logging.INFO, logging.DEBUG][args.verbose],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        tsv_files = list_tsv_files(args.root)
    except OSError as err:
        logger.critical("Error listing TSV files: %s", err)
        return 1
    if not tsv_files:
        logger.info("No .tsv files found in %s or its subdirectories.", args.root)
        return 0

    with logging_redirect_tqdm():
        urls = extract_all(tsv_files, silent=args.silent or bool(args.verbose))
    urls = remove_duplicates(urls)
    try:
        urls = clean_urls(
            urls,
            strip_suffix=args.strip_target_blank,
            on_parse_error=args.on_parse_error,
        )
    except FatalURLError as err:
        logger.critical("%s", err)
        return 1
    if args.quotes:
        urls = quote_urls(urls)

    try:
        write_urls_file(urls, args.output)
    except OSError as err:
        logger.error("Error saving URLs to file: %s", err)
        return 1
    logger.info("Successfully saved %d URLs to %s", len(urls), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
