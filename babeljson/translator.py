"""High-level orchestration for document translation."""

from __future__ import annotations

import pathlib
import time
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from .batching import DEFAULT_BATCH_SIZE, BatchBuilder
from .configuration import DEFAULT_TARGET_LANGUAGE, DEFAULT_TONE
from .documents import apply_leaves, clone_tree, collect_leaves, detect_handler
from .errors import (
    BabelJsonError,
    BatchFailure,
    CountMismatchError,
    FailureKind,
    OverwriteRefusedError,
    TranslationServiceError,
)
from .paths import format_path
from .policy import RetryPolicy
from .providers import TranslationProvider, build_provider
from .structures import Batch, Node
from .tokenizer import Tokenizer, detokenize, missing_tokens, tidy_whitespace

SENTINEL = "---"


def repair_translations(
    originals: Sequence[str],
    translated: Sequence[str],
) -> Tuple[List[str], int]:
    """Fall back to the original text for empty or sentinel translations."""

    repaired: List[str] = []
    count = 0
    for original, candidate in zip(originals, translated):
        stripped = candidate.strip()
        if not stripped or stripped == SENTINEL:
            repaired.append(original)
            count += 1
        else:
            repaired.append(candidate)
    return repaired, count


@dataclass
class BatchOutcome:
    """Result of translating one batch: translations or a classified failure."""

    batch: Batch
    translations: List[str] | None = None
    failure: BatchFailure | None = None
    attempts: int = 0
    repaired: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None and self.translations is not None


class BatchTranslator:
    """Translates an ordered list of strings batch by batch with retries."""

    def __init__(
        self,
        provider: TranslationProvider,
        *,
        target_language: str,
        tone: str = DEFAULT_TONE,
        model: str | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_retries: int = 5,
        batch_delay: float = 0.7,
        retry_delay: float = 0.4,
        verbose: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.target_language = target_language
        self.tone = tone
        self.model = model
        self.batch_builder = BatchBuilder(batch_size)
        self.batch_delay = max(0.0, batch_delay)
        self.verbose = verbose
        self.sleep = sleep
        self.policy = RetryPolicy(
            max_attempts=max_retries,
            retry_delay=retry_delay,
            verbose=verbose,
        )
        self.total_batches = 0
        self.repaired_items = 0

    def attempt(self, batch: Batch, attempt: int) -> BatchOutcome:
        """Run a single provider call and validate its answer."""

        try:
            result = self.provider.translate(
                batch.texts,
                target_language=self.target_language,
                tone=self.tone,
                model=self.model,
            )
        except TranslationServiceError as exc:
            return BatchOutcome(
                batch=batch,
                failure=BatchFailure.from_error(exc, attempt),
                attempts=attempt,
            )

        if not isinstance(result, list) or not all(isinstance(item, str) for item in result):
            return BatchOutcome(
                batch=batch,
                failure=BatchFailure(
                    kind=FailureKind.MALFORMED,
                    message="Translation response is not a list of strings.",
                    attempt=attempt,
                ),
                attempts=attempt,
            )
        if len(result) != len(batch):
            return BatchOutcome(
                batch=batch,
                failure=BatchFailure(
                    kind=FailureKind.LENGTH,
                    message=f"Count mismatch: expected {len(batch)}, got {len(result)}.",
                    attempt=attempt,
                ),
                attempts=attempt,
            )

        translations, repaired = repair_translations(batch.texts, result)
        return BatchOutcome(
            batch=batch,
            translations=translations,
            attempts=attempt,
            repaired=repaired,
        )

    def translate_batch(self, batch: Batch) -> BatchOutcome:
        """Call the provider until it succeeds or the attempts run out."""

        attempt = 0
        while True:
            attempt += 1
            outcome = self.attempt(batch, attempt)
            if outcome.failure is None:
                return outcome
            if not self.policy.should_retry(outcome.failure):
                return outcome
            self.sleep(self.policy.delay_for(attempt))

    def translate_all(self, texts: Sequence[str]) -> List[str]:
        """Translate every string, keeping the input order."""

        batches = self.batch_builder.build(texts)
        self.total_batches = len(batches)
        results: List[str] = []
        for position, batch in enumerate(batches):
            outcome = self.translate_batch(batch)
            if outcome.failure is not None:
                raise TranslationServiceError(
                    f"Batch {batch.batch_id} failed after {outcome.attempts} attempts. "
                    f"{outcome.failure.message}",
                    outcome.failure.kind,
                )
            results.extend(outcome.translations or [])
            self.repaired_items += outcome.repaired
            if self.verbose:
                print(
                    f"Processed batch {batch.batch_id} of {len(batches)} "
                    f"({len(batch)} strings)."
                )
            if position < len(batches) - 1 and self.batch_delay:
                self.sleep(self.batch_delay)
        return results


@dataclass
class TreeTranslation:
    """Translated tree plus notes gathered along the way."""

    tree: Node
    leaf_count: int
    notes: List[str] = field(default_factory=list)


def translate_tree(
    tree: Node,
    *,
    tokenizer: Tokenizer,
    batch_translator: BatchTranslator,
) -> TreeTranslation:
    """Translate every string leaf of ``tree`` into a new tree."""

    leaves = collect_leaves(tree)
    if not leaves:
        return TreeTranslation(tree=clone_tree(tree), leaf_count=0)

    tokenized = [tokenizer.tokenize(leaf.text) for leaf in leaves]
    translated = batch_translator.translate_all([item.text for item in tokenized])
    if len(translated) != len(tokenized):
        raise CountMismatchError(
            f"Translation count mismatch: expected {len(tokenized)}, got {len(translated)}. "
            "Try lowering the batch size."
        )

    notes: List[str] = []
    final_texts: List[str] = []
    for leaf, source, text in zip(leaves, tokenized, translated):
        dropped = missing_tokens(text, source.token_map)
        if dropped:
            notes.append(
                f"{format_path(leaf.path) or '<root>'}: translation dropped "
                f"{len(dropped)} protected token(s): "
                + ", ".join(repr(source.token_map[token]) for token in dropped)
            )
        final_texts.append(tidy_whitespace(detokenize(text, source.token_map)))

    output = apply_leaves(tree, leaves, final_texts)
    return TreeTranslation(tree=output, leaf_count=len(leaves), notes=notes)


@dataclass
class RunOptions:
    """Everything a translation run needs to know."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    target_language: str = DEFAULT_TARGET_LANGUAGE
    tone: str = DEFAULT_TONE
    model: str | None = None
    protected_terms: List[str] = field(default_factory=list)
    batch_size: int = DEFAULT_BATCH_SIZE
    max_retries: int = 5
    batch_delay: float = 0.7
    retry_delay: float = 0.4
    request_timeout: float = 90.0
    provider_name: str | None = None
    verbose: bool = False
    provider_debug: bool = False


@dataclass
class TranslationSummary:
    """Report returned after processing a document."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    document_type: str
    total_leaves: int
    total_batches: int
    repaired_items: int
    failed_attempts: int
    provider_name: str
    model: str | None
    target_language: str
    elapsed_seconds: float
    notes: List[str] = field(default_factory=list)


class TranslationRunner:
    """Coordinates loading, translation, and saving of one document."""

    def __init__(
        self,
        options: RunOptions,
        *,
        provider: TranslationProvider | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.options = options
        self.provider = provider
        self.sleep = sleep

    def run(self) -> TranslationSummary:
        start_time = time.time()
        options = self.options

        provider = self.provider or build_provider(
            options.provider_name,
            timeout=options.request_timeout,
            debug=options.provider_debug,
        )

        document_type, handler = detect_handler(options.input_path)
        leaves = handler.extract_leaves()
        if options.verbose:
            print(f"Prepared {len(leaves)} strings for translation.")

        batch_translator = BatchTranslator(
            provider,
            target_language=options.target_language,
            tone=options.tone,
            model=options.model,
            batch_size=options.batch_size,
            max_retries=options.max_retries,
            batch_delay=options.batch_delay,
            retry_delay=options.retry_delay,
            verbose=options.verbose,
            sleep=self.sleep,
        )
        result = translate_tree(
            handler.tree,
            tokenizer=Tokenizer(options.protected_terms),
            batch_translator=batch_translator,
        )

        handler.save(result.tree, options.output_path)

        return TranslationSummary(
            input_path=options.input_path,
            output_path=options.output_path,
            document_type=document_type,
            total_leaves=result.leaf_count,
            total_batches=batch_translator.total_batches,
            repaired_items=batch_translator.repaired_items,
            failed_attempts=len(batch_translator.policy.records),
            provider_name=options.provider_name or "openai",
            model=options.model,
            target_language=options.target_language,
            elapsed_seconds=time.time() - start_time,
            notes=result.notes,
        )


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            "Input file not found. Please provide a readable .json file."
        )
    if not input_path.is_file():
        raise BabelJsonError("Input path must be a file.")

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input document. Refusing to overwrite the source file."
        )

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use the overwrite flag."
        )
