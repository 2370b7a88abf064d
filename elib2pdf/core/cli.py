"""
CLI interface for elib2pdf
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from .downloader import BookDownloader
from .errors import ResolveError, SetupError
from .models import BookIdentity
from .progress import ThrottledProgress


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser"""
    parser = argparse.ArgumentParser(
        description="Download a book from the ASU electronic library as a PDF"
    )

    parser.add_argument(
        "source",
        help="Library link, or a book id when --name is given"
    )

    parser.add_argument(
        "--name",
        help="Book name from the viewer URL; skips link resolution"
    )

    parser.add_argument(
        "--title",
        default="",
        help="Title used for the output filename"
    )

    parser.add_argument(
        "--output-dir", "-o",
        default=".",
        help="Directory for the PDF"
    )

    parser.add_argument(
        "--retries",
        type=int,
        help="Attempts per page"
    )

    parser.add_argument(
        "--retry-delay",
        type=float,
        help="Seconds between attempts"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds per attempt"
    )

    parser.add_argument(
        "--progress-interval",
        type=float,
        default=5.0,
        help="Seconds between progress lines"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    progress = ThrottledProgress(_print_progress, interval=args.progress_interval)

    try:
        downloader = BookDownloader(
            max_retries=args.retries,
            retry_delay=args.retry_delay,
            timeout=args.timeout,
        )
        if args.name:
            identity = BookIdentity(book_id=args.source, book_name=args.name, title=args.title)
        else:
            identity = downloader.resolver.resolve(args.source)
            if args.title:
                identity.title = args.title
        result = downloader.download(identity, on_progress=progress)
    except (ResolveError, SetupError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    progress.flush()
    output = downloader.save(result, args.output_dir)

    print(f"PDF saved: {output}")
    print(f"Pages: {result.page_count}")
    if result.session.skipped:
        skipped = ", ".join(str(index) for index in result.session.skipped_indices)
        print(f"Skipped invalid pages: {skipped}")
    if not result.complete:
        print(
            f"Warning: download stopped early: {result.session.failure}",
            file=sys.stderr,
        )


def _print_progress(page: int) -> None:
    print(f"Downloaded pages: {page}", flush=True)


if __name__ == "__main__":
    main()
