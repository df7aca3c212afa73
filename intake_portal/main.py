"""Command-line entry point for the Intake Portal export tooling."""

import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config.settings import settings
from .core.exceptions import IntakePortalError
from .core.models.export import ExportArtifact, ExportConfiguration
from .infrastructure.blob import create_blob_store
from .infrastructure.logging import logging_service
from .infrastructure.store import create_document_store
from .services.archive_builder import ArchiveBuilder, ImageFetcher
from .services.content_formatter import format_summary
from .services.export_session import ExportSession
from .services.export_settings_service import ExportSettingsService
from .services.request_service import RequestService
from .services.section_catalog import format_section_title
from .services.section_resolver import SectionResolver
from .services.upload_service import UploadService

console = Console()


class PortalApp:
    """Wires the configured backends into the export services."""

    def __init__(self):
        self.store = create_document_store(settings.store)
        self.blob_store = create_blob_store(settings.blob)
        self.builder = ArchiveBuilder(
            self.blob_store,
            ImageFetcher(timeout=settings.export.image_fetch_timeout),
            concurrency=settings.export.image_fetch_concurrency,
        )
        self.settings_service = ExportSettingsService(self.store, settings.export.cache_path)
        self.request_service = RequestService(self.store)
        self.upload_service = UploadService(
            self.blob_store, settings.export.max_upload_size, settings.export.allowed_upload_types
        )

    def session(self, admin_uid: Optional[str] = None) -> ExportSession:
        return ExportSession(SectionResolver(self.store), self.builder, self.settings_service, admin_uid)

    async def close(self):
        await self.builder.close()
        await self.store.close()


def run(coro):
    """Run one command coroutine, reporting portal errors instead of tracebacks."""
    try:
        return asyncio.run(coro)
    except IntakePortalError as e:
        logging_service.log_error(e, component="cli")
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)


def build_config(export_format: Optional[str], no_images: bool, compression: Optional[str],
                 base: Optional[ExportConfiguration] = None) -> ExportConfiguration:
    document = (base or ExportConfiguration()).to_document()
    if export_format:
        document["exportFormat"] = export_format
    if no_images:
        document["includeImages"] = False
    if compression:
        document["compressionLevel"] = compression
    return ExportConfiguration.model_validate(document)


def write_artifact(artifact: ExportArtifact, out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / artifact.filename
    target.write_bytes(artifact.data)
    return target


def report_artifact(artifact: ExportArtifact, target: Path):
    console.print(f"[green]✓ Exported {artifact.section_id} to {target} ({artifact.size} bytes)[/green]")
    if artifact.images_added or artifact.image_failures:
        console.print(f"  Images added: {artifact.images_added}")
    for failure in artifact.image_failures:
        console.print(f"  [yellow]•[/yellow] {failure.url}: {failure.error}")


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(debug):
    """Intake Portal - client content review and export."""
    if debug:
        logging_service.set_level("DEBUG")

    errors = settings.validate()
    if errors:
        console.print("[red]Configuration errors found:[/red]")
        for section, section_errors in errors.items():
            for error in section_errors:
                console.print(f"  [red]•[/red] {section}: {error}")
        console.print("\n[yellow]Please fix configuration errors before proceeding.[/yellow]")
        sys.exit(1)


@cli.command()
@click.argument('client_id')
def sections(client_id: str):
    """List a client's sections and whether they have content."""

    async def _run():
        app = PortalApp()
        try:
            session = app.session()
            with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                          console=console) as progress:
                progress.add_task(f"Loading content for {client_id}...", total=None)
                await session.select_client(client_id)

            table = Table(title=f"Sections for {client_id}")
            table.add_column("Section", style="cyan")
            table.add_column("Name")
            table.add_column("Known")
            table.add_column("Has content", style="green")
            for entry in session.sections():
                table.add_row(entry.id, entry.name, "yes" if entry.is_known else "no",
                              "yes" if entry.has_content else "-")
            console.print(table)
        finally:
            await app.close()

    run(_run())


@cli.command()
@click.argument('client_id')
@click.argument('section_id')
def show(client_id: str, section_id: str):
    """Print a text summary of one section."""

    async def _run():
        app = PortalApp()
        try:
            session = app.session()
            await session.select_client(client_id)
            data = session.section_data(section_id)
            title = format_section_title(section_id)
            console.print(Panel(format_summary(data, title), title=title))
        finally:
            await app.close()

    run(_run())


@cli.command()
@click.argument('client_id')
@click.argument('section_id')
@click.option('--admin', 'admin_uid', help='Admin whose saved export settings apply')
@click.option('--format', 'export_format', type=click.Choice(['zip', 'json', 'txt']), help='Export format')
@click.option('--no-images', is_flag=True, help='Skip images in zip exports')
@click.option('--compression', type=click.Choice(['low', 'medium', 'high']), help='Zip compression level')
@click.option('--out', 'out_dir', default='exports', type=click.Path(file_okay=False), help='Output directory')
def export(client_id, section_id, admin_uid, export_format, no_images, compression, out_dir):
    """Export one section of a client's content."""

    async def _run():
        app = PortalApp()
        try:
            base = await app.settings_service.load(admin_uid) if admin_uid else None
            config = build_config(export_format, no_images, compression, base)
            session = app.session(admin_uid)
            await session.select_client(client_id)
            artifact = await session.export_section(section_id, config)
            report_artifact(artifact, write_artifact(artifact, Path(out_dir)))
        finally:
            await app.close()

    run(_run())


@cli.command('export-all')
@click.argument('client_id')
@click.option('--admin', 'admin_uid', help='Admin whose saved export settings apply')
@click.option('--format', 'export_format', type=click.Choice(['zip', 'json', 'txt']), help='Export format')
@click.option('--no-images', is_flag=True, help='Skip images in zip exports')
@click.option('--out', 'out_dir', default='exports', type=click.Path(file_okay=False), help='Output directory')
def export_all(client_id, admin_uid, export_format, no_images, out_dir):
    """Export every section of a client's content as one artifact."""

    async def _run():
        app = PortalApp()
        try:
            base = await app.settings_service.load(admin_uid) if admin_uid else None
            config = build_config(export_format, no_images, None, base)
            session = app.session(admin_uid)
            await session.select_client(client_id)
            artifact = await session.export_all(config)
            report_artifact(artifact, write_artifact(artifact, Path(out_dir)))
        finally:
            await app.close()

    run(_run())


@cli.command()
@click.option('--status', type=click.Choice(['pending', 'approved', 'rejected']), help='Filter by status')
def requests(status):
    """List build requests, newest first."""

    async def _run():
        app = PortalApp()
        try:
            found = await app.request_service.list_requests(status)
            table = Table(title="Build Requests")
            table.add_column("ID", style="cyan")
            table.add_column("Client")
            table.add_column("Email")
            table.add_column("Status", style="green")
            table.add_column("Created")
            for request in found:
                table.add_row(request.id or "", request.client_name, request.client_email,
                              request.status, request.created_at.strftime("%Y-%m-%d %H:%M"))
            console.print(table)
        finally:
            await app.close()

    run(_run())


@cli.command()
@click.argument('user_id')
@click.argument('category')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
def upload(user_id, category, file_path):
    """Upload a file into a user's storage folder."""

    async def _run():
        app = PortalApp()
        try:
            path = Path(file_path)
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            result = await app.upload_service.upload(user_id, category, path.name, path.read_bytes(), content_type)
            console.print(f"[green]✓ Uploaded to {result['path']}[/green]")
            console.print(f"  URL: {result['url']}")
        finally:
            await app.close()

    run(_run())


@cli.command()
@click.option('--host', default=None, help='Host to bind server to')
@click.option('--port', default=None, type=int, help='Port to run server on')
def serve(host, port):
    """Run the admin API server."""
    import uvicorn
    from .api.server import create_app

    host = host or settings.api.host
    port = port or settings.api.port
    console.print(f"[green]Starting admin API at http://{host}:{port}[/green]")
    uvicorn.run(create_app(), host=host, port=port, log_level=settings.logging.level.lower())


if __name__ == '__main__':
    cli()
