"""Command line interface for the babeljson translator."""

from __future__ import annotations

import argparse
import pathlib
import re
import sys
from typing import Iterable, Optional

from .configuration import (
    DEFAULT_TARGET_LANGUAGE,
    BabelJsonConfig,
    get_settings,
    split_terms,
)
from .errors import (
    BabelJsonError,
    ConfigurationError,
    DocumentParseError,
    OverwriteRefusedError,
    UnsupportedFileTypeError,
)
from .providers import TranslationProvider
from .translator import RunOptions, TranslationRunner, TranslationSummary, validate_paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="babeljson",
        description=(
            "Translate the strings of a JSON localisation file while preserving "
            "structure, markup, placeholders, and brand names."
        ),
    )
    parser.add_argument(
        "input_file",
        help="Path to the .json file to translate.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending the target language code.",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        default=DEFAULT_TARGET_LANGUAGE,
        help=f"Target language as a BCP 47 tag (default: {DEFAULT_TARGET_LANGUAGE}).",
    )
    parser.add_argument(
        "--tone",
        help="Tone/style hint passed to the translator.",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or deployment identifier.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (openai, legacy-openai, echo).",
    )
    parser.add_argument(
        "--protect",
        help='Comma separated brand terms to keep exactly (e.g. "Acme,Stripe").',
    )
    parser.add_argument(
        "-b",
        "--batch-size",
        type=int,
        help="Number of strings sent per translation call.",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        help="Maximum attempts per batch before giving up.",
    )
    parser.add_argument(
        "--batch-delay",
        type=float,
        help="Seconds to wait between batches.",
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        help="Base backoff in seconds; attempt n waits n times this value.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request network timeout in seconds.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def sanitise_language_for_filename(language: str) -> str:
    """Generate a filesystem-friendly suffix from a language descriptor."""

    collapsed = re.sub(r"\s+", "-", language.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9\-]+", "", ascii_only)
    return cleaned or "translated"


def derive_output_path(input_path: pathlib.Path, language: str) -> pathlib.Path:
    suffix = input_path.suffix
    stem = input_path.stem
    addition = sanitise_language_for_filename(language)
    candidate = f"{stem}_{addition}{suffix}"
    return input_path.with_name(candidate)


def build_options(args: argparse.Namespace, settings: BabelJsonConfig) -> RunOptions:
    """Merge command line arguments over configured defaults."""

    input_path = pathlib.Path(args.input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(args.output).expanduser().resolve()
        if args.output
        else derive_output_path(input_path, args.target_language)
    )
    protected_terms = (
        split_terms(args.protect)
        if args.protect is not None
        else list(settings.BABELJSON_PROTECTED_TERMS)
    )

    def pick(value, default):
        return default if value is None else value

    options = RunOptions(
        input_path=input_path,
        output_path=output_path,
        target_language=args.target_language,
        tone=pick(args.tone, settings.BABELJSON_TONE),
        model=pick(args.model, settings.BABELJSON_MODEL),
        protected_terms=protected_terms,
        batch_size=pick(args.batch_size, settings.BABELJSON_BATCH_SIZE),
        max_retries=pick(args.max_retries, settings.BABELJSON_MAX_RETRIES),
        batch_delay=pick(args.batch_delay, settings.BABELJSON_BATCH_DELAY),
        retry_delay=pick(args.retry_delay, settings.BABELJSON_RETRY_DELAY),
        request_timeout=pick(args.timeout, settings.BABELJSON_REQUEST_TIMEOUT),
        provider_name=args.provider,
        verbose=args.verbose,
        provider_debug=bool(args.debug_provider or settings.BABELJSON_PROVIDER_DEBUG),
    )
    if options.batch_size < 1:
        raise ConfigurationError("Batch size must be at least 1.")
    if options.max_retries < 1:
        raise ConfigurationError("Max retries must be at least 1.")
    if options.batch_delay < 0 or options.retry_delay < 0:
        raise ConfigurationError("Delays cannot be negative.")
    if options.request_timeout <= 0:
        raise ConfigurationError("Timeout must be greater than zero.")
    return options


def execute_translation(
    options: RunOptions,
    *,
    force_overwrite: bool,
    provider: TranslationProvider | None = None,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    try:
        validate_paths(options.input_path, options.output_path, force_overwrite=force_overwrite)
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except OverwriteRefusedError as exc:
        return 1, None, str(exc)
    except BabelJsonError as exc:
        return 1, None, str(exc)

    runner = TranslationRunner(options, provider=provider)

    try:
        summary = runner.run()
    except ConfigurationError as exc:
        return 2, None, str(exc)
    except UnsupportedFileTypeError as exc:
        return 1, None, str(exc)
    except DocumentParseError as exc:
        return 1, None, str(exc)
    except BabelJsonError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."
    except OSError as exc:
        return 1, None, f"Could not read or write a file: {exc}"

    return 0, summary, None


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    if not summary.total_leaves:
        print("No strings found to translate.")
    print(f"Done → {summary.output_path}")
    print(f"  Input file:      {summary.input_path}")
    print(
        f"  Strings:         {summary.total_leaves} "
        f"in {summary.total_batches} batches"
    )
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    print(f"  Target language: {summary.target_language}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.repaired_items:
        print(f"  Left untranslated (empty answer): {summary.repaired_items}")
    if summary.failed_attempts:
        print(f"  Retried calls:   {summary.failed_attempts}")
    if summary.notes:
        print("  Notes:")
        for message in summary.notes:
            print(f"    - {message}")


def main(
    argv: Optional[Iterable[str]] = None,
    *,
    provider: TranslationProvider | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
        options = build_options(args, settings)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 2

    exit_code, summary, message = execute_translation(
        options,
        force_overwrite=args.force,
        provider=provider,
    )

    if message:
        print(f"FAILED: {message}", file=sys.stderr)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
