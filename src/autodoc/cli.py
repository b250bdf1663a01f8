"""CLI entry point for autodoc."""

import copy
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import CONFIG_FILENAMES, DEFAULT_CONFIG, load_config
from .errors import AutodocError, IncompleteTreeError

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    for noisy in ("httpx", "anthropic", "chromadb", "sentence_transformers"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """autodoc - Generate, index, and query LLM-written documentation for a repository."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    _setup_logging(verbose)


def _get_config(ctx) -> dict:
    try:
        return load_config(ctx.obj.get("config_path"))
    except AutodocError as e:
        console.print(f"[red]{e}[/]")
        ctx.exit(1)


@cli.command()
@click.option("--path", default=".", help="Directory to write the config file into")
@click.option("--name", default=None, help="Project name")
@click.option("--url", "repository_url", default="", help="Repository URL used for source links")
@click.pass_context
def init(ctx, path, name, repository_url):
    """Write a starter autodoc.config.yaml."""
    import yaml

    target_dir = Path(path).expanduser().resolve()
    config_file = target_dir / CONFIG_FILENAMES[0]
    if config_file.exists():
        console.print(f"[yellow]Config already exists: {config_file}[/]")
        return

    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["repos"][0]["name"] = name or target_dir.name
    cfg["repos"][0]["repository_url"] = repository_url
    header = (
        "# Anthropic API key for summarization (or set ANTHROPIC_API_KEY env var)\n"
        "# anthropic_api_key: sk-ant-your-key-here\n\n"
        "# Link documents to a hosted copy of the generated markdown\n"
        "# link_hosted: true\n"
        '# hosted_docs_url: "https://example.com/docs"\n\n'
    )
    target_dir.mkdir(parents=True, exist_ok=True)
    config_file.write_text(header + yaml.dump(cfg, default_flow_style=False, sort_keys=False), encoding="utf-8")
    console.print(f"[bold green]✓ Created config: {config_file}[/]")
    console.print("  Run: autodoc index")


def _print_counts(summary, docs, vectors) -> None:
    console.print(
        f"[green]✓ Summarized {len(summary.processed)} node(s), reused {len(summary.skipped)}[/]"
    )
    if summary.failed or summary.blocked:
        console.print(f"  [yellow]{len(summary.failed)} failed, {len(summary.blocked)} blocked[/]")
    if docs is not None:
        console.print(f"[green]✓ Wrote {len(docs.written)} document(s)[/]")
    if vectors is not None:
        console.print(f"[green]✓ Embedded {vectors.embedded} chunk(s)[/]")
        if vectors.failed:
            console.print(f"  [yellow]{len(vectors.failed)} chunk(s) could not be embedded[/]")


@cli.command()
@click.option("--force", is_flag=True, help="Re-summarize nodes even if their content is unchanged")
@click.pass_context
def index(ctx, force):
    """Summarize the repository, write markdown docs, and build the search index."""
    from .stages import index as run_index

    config = _get_config(ctx)
    console.print(f"[blue]Indexing {Path(config['root']).expanduser().resolve()}...[/]")

    try:
        summary, docs, vectors = run_index(config, force=force)
    except IncompleteTreeError as e:
        _print_counts(e.summary, e.documents, e.vectors)
        console.print(f"[yellow]⚠ {e}[/]")
        for path, error in e.summary.errors.items():
            console.print(f"  [red]{path}[/]: {error}")
        ctx.exit(1)
    except AutodocError as e:
        console.print(f"[red]✗ {e}[/]")
        ctx.exit(1)

    _print_counts(summary, docs, vectors)


@cli.command()
@click.argument("query")
@click.option("--n", "-n", default=5, help="Number of results")
@click.pass_context
def search(ctx, query, n):
    """Semantic search over the generated documentation."""
    from .vectors.search import semantic_search

    config = _get_config(ctx)
    console.print(f"[blue]Searching for: '{query}'[/]\n")

    results = semantic_search(query, config, n_results=n)

    if not results:
        console.print("[yellow]No results found. Have you run 'autodoc index'?[/]")
        return

    table = Table(title="Search Results")
    table.add_column("#", style="dim", width=3)
    table.add_column("Document", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Preview", max_width=60)

    for i, r in enumerate(results, 1):
        source = r["metadata"].get("source", "unknown")
        score = f"{1 - r['distance']:.3f}"
        preview = r["document"][:80].replace("\n", " ")
        table.add_row(str(i), source, score, preview)

    console.print(table)


@cli.command()
@click.argument("question")
@click.option("--n", "-n", default=10, help="Number of context chunks to retrieve")
@click.pass_context
def ask(ctx, question, n):
    """Ask a question and get an answer grounded in the generated docs."""
    from .qa import ask_question
    from rich.markdown import Markdown
    from rich.panel import Panel

    config = _get_config(ctx)
    console.print("[blue]Searching documentation for context...[/]\n")

    try:
        result = ask_question(question, config, n_chunks=n)
    except AutodocError as e:
        console.print(f"[red]{e}[/]")
        ctx.exit(1)

    console.print(Panel(Markdown(result["answer"]), title="Answer", border_style="green"))

    if result["sources"]:
        console.print("\n[bold]Sources:[/]")
        for source in result["sources"]:
            console.print(f"  • {source}")


if __name__ == "__main__":
    cli()
