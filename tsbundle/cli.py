import logging
import sys
from pathlib import Path
from typing import Optional

import click

from tsbundle.bundler import generate_batch_bundle, generate_batch_bundles_to_files, generate_bundle
from tsbundle.errors import BundleError
from tsbundle.logger import set_level


def _write_output(content: str, output: Optional[str]) -> None:
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        click.echo(f"Bundle written to {path} ({len(content)} chars)", err=True)
    else:
        click.echo(content, nl=False)


def _split_entries(entries: tuple[str, ...]) -> list[str]:
    result: list[str] = []
    for value in entries:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


@click.group()
def cli():
    """
    Bundle TypeScript type declarations together with everything they depend on.
    """


@cli.command("bundle")
@click.option("-i", "--input", "entry_file",
              type=click.Path(dir_okay=False, path_type=str),
              required=True,
              help="Entry file declaring (or importing) the type.")
@click.option("-t", "--type", "type_name",
              type=str,
              required=True,
              help="Name of the type, interface or enum to bundle.")
@click.option("-o", "--output",
              type=click.Path(dir_okay=False, path_type=str),
              default=None,
              help="Write the bundle to this file instead of stdout.")
@click.option("-r", "--root", "project_root",
              type=click.Path(exists=True, file_okay=False, path_type=str),
              default=None,
              help="Project root (default: detected from the entry file).")
@click.option("-a", "--alias",
              type=str,
              default=None,
              help="Output name for the bundled type.")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Enable debug logging.")
def bundle_cmd(entry_file, type_name, output, project_root, alias, verbose):
    """
    Bundle one type. An unknown type yields empty output.
    """
    if verbose:
        set_level(logging.DEBUG)

    try:
        content = generate_bundle(entry_file, type_name, project_root=project_root, alias=alias)
    except BundleError as exc:
        click.echo(f"Bundling failed: {exc}", err=True)
        sys.exit(1)

    _write_output(content, output)


@cli.command("batch-bundle")
@click.option("-e", "--entries",
              multiple=True,
              required=True,
              help="Entry 'path:Type' or 'path:Type:Alias'. Repeat or separate with commas.")
@click.option("--output-dir",
              type=click.Path(file_okay=False, path_type=str),
              default=None,
              help="Write one .d.ts file per entry into this directory.")
@click.option("-o", "--output",
              type=click.Path(dir_okay=False, path_type=str),
              default=None,
              help="Write the merged bundle to this file instead of stdout.")
@click.option("-r", "--root", "project_root",
              type=click.Path(exists=True, file_okay=False, path_type=str),
              default=None,
              help="Project root (default: detected from the first entry).")
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Enable debug logging.")
def batch_bundle_cmd(entries, output_dir, output, project_root, verbose):
    """
    Bundle several types, merged into one text or one file per entry.
    """
    if verbose:
        set_level(logging.DEBUG)

    entry_list = _split_entries(entries)
    try:
        if output_dir:
            result = generate_batch_bundles_to_files(entry_list, output_dir, project_root=project_root)
        else:
            result = generate_batch_bundle(entry_list, project_root=project_root)
    except BundleError as exc:
        click.echo(f"Bundling failed: {exc}", err=True)
        sys.exit(1)

    if output_dir:
        for file_result in result.files:
            click.echo(f"{file_result.file_path} ({file_result.content_size} chars)")
    else:
        _write_output(result.content, output)

    for error in result.errors:
        click.echo(f"Entry {error.entry!r} failed: {error.message}", err=True)
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()   # noqa: E305
