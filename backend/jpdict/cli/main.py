"""CLI entrypoint for jpdict."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import orjson
import typer

from jpdict.analysis.frequency import Token, analyze as analyze_tokens
from jpdict.core.config import Settings, get_settings
from jpdict.core.errors import FormatError
from jpdict.core.logging import configure_logging
from jpdict.core.metrics import write_metrics
from jpdict.ingest.pipeline import DictionaryBuilder
from jpdict.store.codec import entry_to_dict
from jpdict.store.files import dictionary_paths, open_reader

app = typer.Typer(name="jpdict", help="Build and query the chunked dictionary store")


def _settings(dict_path: Optional[Path] = None) -> Settings:
    settings = get_settings().model_copy()
    if dict_path is not None:
        settings.dict_path = dict_path
    return settings


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    configure_logging(level=(log_level or settings.log_level).upper(), use_json=settings.log_json)


@app.command()
def build(
    output: Optional[Path] = typer.Option(None, "--output", help="Dictionary base path (without suffix)"),
    jmdict: Optional[Path] = typer.Option(None, "--jmdict", help="Path to a JMdict XML file"),
    wanikani_token: Optional[str] = typer.Option(None, "--wanikani-token", help="WaniKani API token"),
    updated_after: Optional[datetime] = typer.Option(
        None, "--updated-after", help="Only fetch WaniKani subjects updated after this time"
    ),
    metrics_file: Optional[Path] = typer.Option(None, "--metrics-file", help="Write Prometheus metrics here"),
) -> None:
    """Build the dictionary file pair from the configured sources."""
    settings = _settings(output)
    if jmdict is not None:
        settings.jmdict_path = jmdict
    if wanikani_token is not None:
        settings.wanikani_token = wanikani_token
    if updated_after is not None:
        settings.wanikani_updated_after = updated_after

    result = DictionaryBuilder(settings).build()
    if metrics_file is not None:
        write_metrics(metrics_file)
    _echo_json(result.to_dict())


@app.command()
def lookup(
    words: List[str] = typer.Argument(..., help="Words to look up"),
    dict_path: Optional[Path] = typer.Option(None, "--dict", help="Dictionary base path"),
) -> None:
    """Look up words and print the matching entries."""
    settings = _settings(dict_path)
    with open_reader(settings.dict_path, settings) as reader:
        found = reader.lookup(words)
    _echo_json({word: [entry_to_dict(entry) for entry in entries] for word, entries in found.items()})


@app.command()
def analyze(
    tokens_file: Path = typer.Argument(..., help="JSON array of {text, pos, base, reading} tokens"),
    dict_path: Optional[Path] = typer.Option(None, "--dict", help="Dictionary base path"),
) -> None:
    """Count segmented tokens and attach dictionary entries."""
    settings = _settings(dict_path)
    tokens = [Token.from_dict(item) for item in orjson.loads(tokens_file.read_bytes())]
    with open_reader(settings.dict_path, settings) as reader:
        results = analyze_tokens(tokens, reader)
    _echo_json([result.to_dict() for result in results])


@app.command()
def stats(
    dict_path: Optional[Path] = typer.Option(None, "--dict", help="Dictionary base path"),
) -> None:
    """Scan the dictionary file pair and report its size."""
    settings = _settings(dict_path)
    data_path, index_path = dictionary_paths(settings.dict_path)
    chunks = entries = 0
    try:
        with open_reader(settings.dict_path, settings) as reader:
            words = len(reader)
            for _offset, chunk in reader.iter_chunks():
                chunks += 1
                entries += len(chunk)
    except FormatError as exc:
        typer.echo(f"Corrupt dictionary: {exc}", err=True)
        raise typer.Exit(code=1)
    _echo_json(
        {
            "words": words,
            "chunks": chunks,
            "entries": entries,
            "data_bytes": data_path.stat().st_size,
            "index_bytes": index_path.stat().st_size,
        }
    )


if __name__ == "__main__":
    app()
