"""Command-line interface for the notable text classifier.

Provides ``classify``, ``train``, ``evaluate``, ``inspect`` and ``formats``
commands with rich terminal output using the ``click`` and ``rich``
libraries.

Usage::

    notable-classifier train --notable ./notable --nonnotable ./other
    notable-classifier classify evidence/*.docx
    notable-classifier inspect --top 15
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Iterator, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .analyzer import NotabilityAnalyzer
from .classifier import NaiveBayesTrainer, load_categorizer
from .config import NONNOTABLE_LABEL, NOTABLE_LABEL, ClassifierConfig
from .exceptions import ModelNotFoundError, NotableClassifierError
from .formats import SUPPORTED_FORMATS, FormatGate
from .models import ClassificationResult, SourceFile
from .pipeline import TokenPipeline
from .store import ModelStore

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/] {message}")
    sys.exit(1)


def _iter_files(paths: Iterable[Path]) -> Iterator[Path]:
    """Expand directories into the files beneath them, in sorted order."""
    for path in paths:
        if path.is_dir():
            yield from sorted(p for p in path.rglob("*") if p.is_file())
        else:
            yield path


def _label_style(label: str) -> str:
    return "bold red" if label == NOTABLE_LABEL else "dim green"


@click.group()
@click.version_option(package_name="notable-text-classifier")
@click.option("--config-root", type=click.Path(file_okay=False, path_type=Path), default=None,
              envvar="NOTABLE_CLASSIFIER_HOME",
              help="User config root holding text_classifiers/model.txt.")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv).")
@click.pass_context
def main(ctx: click.Context, config_root: Optional[Path], verbose: int) -> None:
    """Flag notable documents with a Naive Bayes text classifier.

    Train a model from labelled example files, then classify new files as
    notable or non-notable.
    """
    load_dotenv()
    _configure_logging(verbose)
    if config_root is not None:
        ctx.obj = ClassifierConfig.for_root(config_root)
    else:
        ctx.obj = ClassifierConfig.from_env()


@main.command()
@click.argument("files", nargs=-1, required=True,
                type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--notable-only", is_flag=True, help="Only report notable files.")
@click.pass_obj
def classify(config: ClassifierConfig, files: tuple[Path, ...], output: str, notable_only: bool) -> None:
    """Classify files (or every file under a directory).

    Example: notable-classifier classify evidence/
    """
    try:
        analyzer = NotabilityAnalyzer(config)
    except ModelNotFoundError:
        _fail(f"No model found at {config.model_path}. Run 'notable-classifier train' first.")
    except NotableClassifierError as e:
        _fail(str(e))

    rows: list[tuple[Path, Optional[ClassificationResult]]] = []
    with console.status("[bold blue]Classifying files...", spinner="dots"):
        for path in _iter_files(files):
            result = analyzer.classify_path(path)
            if notable_only and (result is None or not result.is_notable):
                continue
            rows.append((path, result))

    if output == "json":
        click.echo(json.dumps([
            {"file": str(path), "supported": result is not None,
             **(result.to_dict() if result else {})}
            for path, result in rows
        ], indent=2))
        return

    _render_results(rows)


@main.command()
@click.option("--notable", "notable_paths", multiple=True, required=True,
              type=click.Path(exists=True, path_type=Path),
              help="File or directory of notable examples (repeatable).")
@click.option("--nonnotable", "nonnotable_paths", multiple=True, required=True,
              type=click.Path(exists=True, path_type=Path),
              help="File or directory of non-notable examples (repeatable).")
@click.option("--update", is_flag=True,
              help="Add to the existing model instead of starting fresh.")
@click.pass_obj
def train(
    config: ClassifierConfig,
    notable_paths: tuple[Path, ...],
    nonnotable_paths: tuple[Path, ...],
    update: bool,
) -> None:
    """Train a model from labelled example files and save it.

    Example: notable-classifier train --notable ./flagged --nonnotable ./benign
    """
    try:
        gate = FormatGate(config)
    except NotableClassifierError as e:
        _fail(str(e))
    pipeline = TokenPipeline(config, detector=gate.detector)
    store = ModelStore(config)

    base = None
    if update:
        try:
            base = store.load()
        except ModelNotFoundError:
            console.print("[dim]No existing model; starting fresh.[/]")
        except NotableClassifierError as e:
            _fail(str(e))

    with console.status("[bold blue]Extracting training documents...", spinner="dots"):
        documents = list(_labelled_documents(gate, pipeline, notable_paths, NOTABLE_LABEL))
        documents += _labelled_documents(gate, pipeline, nonnotable_paths, NONNOTABLE_LABEL)

    trainer = NaiveBayesTrainer(labels=config.labels, alpha=config.alpha)
    try:
        model = trainer.train(documents, base=base)
    except ValueError as e:
        _fail(f"Cannot train model: {e}")

    try:
        store.persist(model)
    except OSError as e:
        _fail(f"Cannot write model to {config.model_path}: {e}")

    counts = dict(zip(model.labels, model.label_counts))
    console.print(Panel(
        f"Documents this run: {len(documents)}\n"
        f"Notable: {int(counts[NOTABLE_LABEL])} | Non-notable: {int(counts[NONNOTABLE_LABEL])}\n"
        f"Vocabulary: {model.vocabulary_size} tokens\n"
        f"Saved to: {config.model_path}",
        title="Model trained",
        border_style="blue",
    ))


@main.command()
@click.option("--notable", "notable_paths", multiple=True, required=True,
              type=click.Path(exists=True, path_type=Path),
              help="File or directory of notable examples (repeatable).")
@click.option("--nonnotable", "nonnotable_paths", multiple=True, required=True,
              type=click.Path(exists=True, path_type=Path),
              help="File or directory of non-notable examples (repeatable).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def evaluate(
    config: ClassifierConfig,
    notable_paths: tuple[Path, ...],
    nonnotable_paths: tuple[Path, ...],
    output: str,
) -> None:
    """Measure the saved model against labelled files."""
    try:
        gate = FormatGate(config)
        categorizer = load_categorizer(ModelStore(config))
    except NotableClassifierError as e:
        _fail(str(e))
    pipeline = TokenPipeline(config, detector=gate.detector)

    documents = list(_labelled_documents(gate, pipeline, notable_paths, NOTABLE_LABEL))
    documents += _labelled_documents(gate, pipeline, nonnotable_paths, NONNOTABLE_LABEL)
    metrics = categorizer.evaluate(documents)

    if output == "json":
        click.echo(json.dumps(metrics.to_dict(), indent=2))
        return

    table = Table(title=f"Evaluation ({len(documents)} documents)")
    table.add_column("Label", style="cyan")
    table.add_column("Precision", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("F1", justify="right")
    table.add_column("Support", justify="right")
    for label, m in metrics.per_class.items():
        table.add_row(
            label,
            f"{m['precision']:.3f}",
            f"{m['recall']:.3f}",
            f"{m['f1']:.3f}",
            str(metrics.support.get(label, 0)),
        )
    console.print(table)
    console.print(f"Accuracy: [bold]{metrics.accuracy:.1%}[/]  Macro F1: [bold]{metrics.macro_f1:.3f}[/]")


@main.command()
@click.option("--top", "-n", default=10, show_default=True, help="Tokens to list per label.")
@click.pass_obj
def inspect(config: ClassifierConfig, top: int) -> None:
    """Show statistics and the most telling tokens of the saved model."""
    try:
        model = ModelStore(config).load()
    except NotableClassifierError as e:
        _fail(str(e))

    console.print(Panel(
        f"[bold]{config.model_path}[/]\n"
        + " | ".join(f"{label}: {int(n)} docs" for label, n in zip(model.labels, model.label_counts))
        + f"\nVocabulary: {model.vocabulary_size} tokens | alpha: {model.alpha}",
        title="Text classifier model",
        border_style="blue",
    ))

    for label in model.labels:
        table = Table(title=f"Most informative tokens: {label}")
        table.add_column("#", justify="right", width=4)
        table.add_column("Token", style="cyan")
        table.add_column("Log ratio", justify="right")
        for i, (token, ratio) in enumerate(model.most_informative_tokens(label, top), 1):
            table.add_row(str(i), token, f"{ratio:.3f}")
        console.print(table)


@main.command()
def formats() -> None:
    """List the MIME types eligible for classification."""
    for mime_type in sorted(SUPPORTED_FORMATS):
        click.echo(mime_type)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _labelled_documents(
    gate: FormatGate,
    pipeline: TokenPipeline,
    paths: Iterable[Path],
    label: str,
) -> Iterator[tuple[list[str], str]]:
    for path in _iter_files(paths):
        file = SourceFile(path)
        if not gate.is_supported(file):
            logger.info("Skipping unsupported file %s", path)
            continue
        yield pipeline.extract_tokens(file), label


def _render_results(rows: list[tuple[Path, Optional[ClassificationResult]]]) -> None:
    """Render classification results as a rich table."""
    table = Table(title="Text classification", show_lines=False)
    table.add_column("File", style="white")
    table.add_column("Label", justify="center", width=12)
    table.add_column("Conf.", justify="right", width=7)
    table.add_column("Tokens", justify="right", width=8)

    notable = 0
    for path, result in rows:
        if result is None:
            table.add_row(str(path), Text("unsupported", style="dim"), "-", "-")
            continue
        notable += result.is_notable
        table.add_row(
            str(path),
            Text(result.label, style=_label_style(result.label)),
            f"{result.confidence:.0%}",
            str(result.token_count),
        )

    console.print(table)
    console.print(f"[bold]{notable}[/] notable of {len(rows)} file(s)")


if __name__ == "__main__":
    main()
