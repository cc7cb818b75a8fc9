# folio/cli.py
import logging
import sys
import click
from dotenv import load_dotenv

from folio.errors import EmptyRevision, FolioError, NoLiveRevision
from folio.factory import Services, build_services
from folio.pagination.models import Direction, MatchTier, PageResult, describe_notice
from folio.processor.models import BlockType
from folio.processor.parsers.factory import ParserFactory, UnsupportedFormatError


# Carga .env una sola vez, antes que cualquier otra cosa
load_dotenv()

_BLOCK_PREFIX = {
    BlockType.SECTION_TITLE: "# ",
    BlockType.H1:            "## ",
    BlockType.PARAGRAPH:     "",
}


# ------------------------------------------------------------------
# Grupo raíz
# ------------------------------------------------------------------

@click.group()
@click.version_option(package_name="folio")
@click.option("--db", "db_path", default=None, help="Ruta a la base SQLite (default: ~/.folio/folio.db)")
@click.option("--config", "config_path", default=None, help="Ruta al config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Log detallado en stderr")
@click.pass_context
def main(ctx, db_path: str | None, config_path: str | None, verbose: bool):
    """
    folio: un libro por entregas, revisable sin perder a los lectores.

    Importa el texto, publica revisiones y pagina bloque a bloque
    manteniendo la posición de cada lector entre versiones.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["config_path"] = config_path


# ------------------------------------------------------------------
# Admin: import / publish / revisions
# ------------------------------------------------------------------

@main.command(name="import")
@click.option(
    "--file", "-f", "file_path",
    required = True,
    type     = click.Path(exists=False),   # validamos nosotros para mejor mensaje
    help     = "Texto plano del libro (.txt, .md)",
)
@click.option("--publish", is_flag=True, help="Publicar la revisión recién importada")
@click.pass_context
def import_book(ctx, file_path: str, publish: bool):
    """Importa el libro como una revisión nueva."""
    services = _services(ctx)
    try:
        revision = services.publisher.import_file(file_path)
        click.echo(
            f"[folio] ✓ Revisión {revision.id} importada: "
            f"{revision.block_count} bloques, título {revision.title!r}"
        )
        if publish:
            _print_publish(services.publisher.publish(revision.id))

    except FileNotFoundError:
        _abort(f"Archivo no encontrado: {file_path}")

    except UnsupportedFormatError:
        _abort(
            f"Formato no soportado: {file_path}\n"
            f"Formatos disponibles: {ParserFactory.supported_extensions()}"
        )

    except EmptyRevision as e:
        _error(f"{e}. Revisa que el texto tenga contenido antes de publicar.")
        sys.exit(2)

    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)

    finally:
        services.close()


@main.command()
@click.option("--revision", "-r", "revision_id", required=True, type=int, help="Id de la revisión")
@click.pass_context
def publish(ctx, revision_id: int):
    """Marca una revisión como live y remapea a los lectores."""
    services = _services(ctx)
    try:
        _print_publish(services.publisher.publish(revision_id))

    except EmptyRevision as e:
        _error(f"{e}. No se publica una revisión vacía.")
        sys.exit(2)

    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)

    finally:
        services.close()


@main.command()
@click.pass_context
def revisions(ctx):
    """Lista las revisiones, la más reciente primero."""
    services = _services(ctx)
    try:
        live = services.repo.get_live_revision_id()
        items = services.repo.list_revisions()
    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)
    finally:
        services.close()

    if not items:
        click.echo("[folio] Todavía no hay revisiones. Usa 'folio import'.")
        return

    for rev in items:
        marker = click.style(" (live)", fg="green") if rev.id == live else ""
        click.echo(
            f"[folio] {rev.id:>4}  {rev.created_at}  {rev.block_count:>6} bloques  "
            f"{rev.title!r}{marker}"
        )


# ------------------------------------------------------------------
# Lectores
# ------------------------------------------------------------------

@main.group()
def reader():
    """Alta de lectores."""


@reader.command(name="add")
@click.option("--name", "-n", required=True, help="Nombre del lector")
@click.pass_context
def reader_add(ctx, name: str):
    """Registra un lector nuevo y muestra su id."""
    name = name.strip()
    if not name:
        _abort("--name no puede estar vacío.")

    services = _services(ctx)
    try:
        reader_id = services.repo.create_reader(name)
    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)
    finally:
        services.close()

    click.echo(f"[folio] ✓ Lector {name!r} creado con id {reader_id}")


@main.command()
@click.pass_context
def readers(ctx):
    """Lista los lectores y dónde está cada uno."""
    services = _services(ctx)
    try:
        for r in services.repo.list_readers():
            position = services.repo.get_position(r.id)
            where = (
                f"revisión {position.revision_id}, bloque {position.sequence}"
                if position else "sin empezar"
            )
            click.echo(f"[folio] {r.id:>4}  {r.name}  ({where})")
    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)
    finally:
        services.close()


@main.command()
@click.option("--reader", "-r", "reader_id", required=True, type=int, help="Id del lector")
@click.option("--next", "direction", flag_value="forward", help="Avanzar una página")
@click.option("--back", "direction", flag_value="back", help="Retroceder una página")
@click.option("--expect", "expected_sequence", type=int, default=None,
              help="Sequence que el cliente cree actual (navegación idempotente)")
@click.pass_context
def read(ctx, reader_id: int, direction: str | None, expected_sequence: int | None):
    """Muestra la página actual del lector (o navega con --next / --back)."""
    services = _services(ctx)
    try:
        _require_reader(services, reader_id)
        if direction is None:
            page = services.pager.view(reader_id)
        else:
            page = services.pager.navigate(
                reader_id,
                Direction.FORWARD if direction == "forward" else Direction.BACK,
                expected_sequence=expected_sequence,
            )

    except NoLiveRevision:
        _error("Todavía no hay una revisión publicada. Usa 'folio publish'.")
        sys.exit(2)

    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)

    finally:
        services.close()

    _print_page(page)


# ------------------------------------------------------------------
# Comentarios
# ------------------------------------------------------------------

@main.command()
@click.option("--reader", "-r", "reader_id", required=True, type=int, help="Id del lector")
@click.option("--block", "-b", "block_id", required=True, type=int, help="Id del bloque comentado")
@click.option("--text", "-t", required=True, help="Texto del comentario")
@click.pass_context
def comment(ctx, reader_id: int, block_id: int, text: str):
    """Deja un comentario sobre un bloque."""
    services = _services(ctx)
    try:
        _require_reader(services, reader_id)
        if services.repo.get_block_by_id(block_id) is None:
            _abort(f"Bloque no encontrado: {block_id}")
        comment_id = services.repo.add_comment(reader_id, block_id, text)

    except ValueError as e:
        _abort(str(e))

    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)

    finally:
        services.close()

    click.echo(f"[folio] ✓ Comentario {comment_id} guardado")


@main.command()
@click.option("--block", "-b", "block_id", required=True, type=int, help="Id del bloque")
@click.pass_context
def comments(ctx, block_id: int):
    """Lista los comentarios de un bloque."""
    services = _services(ctx)
    try:
        items = services.repo.list_comments(block_id)
    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)
    finally:
        services.close()

    if not items:
        click.echo(f"[folio] El bloque {block_id} no tiene comentarios.")
        return
    for c in items:
        click.echo(f"[folio] #{c.id} lector {c.reader_id} ({c.created_at}): {c.content}")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _services(ctx) -> Services:
    try:
        return build_services(
            db_path     = ctx.obj.get("db_path"),
            config_path = ctx.obj.get("config_path"),
        )
    except FileNotFoundError as e:
        _abort(str(e))
    except ValueError as e:
        _abort(f"Config inválida: {e}")
    except FolioError as e:
        _error(f"{type(e).__name__}: {e}")
        sys.exit(2)


def _require_reader(services: Services, reader_id: int) -> None:
    if services.repo.get_reader(reader_id) is None:
        _abort(f"Lector no encontrado: {reader_id}. Usa 'folio reader add'.")


# ------------------------------------------------------------------
# Helpers de output
# ------------------------------------------------------------------

def _print_publish(result) -> None:
    """Imprime el resumen de una publicación."""
    click.echo("")
    click.echo("─" * 50)
    click.echo(f"[folio] ✓ Revisión {result.revision_id} publicada (versión {result.live_version})")
    if result.previous_revision_id is not None:
        click.echo(f"[folio]   Anterior     : {result.previous_revision_id}")
    click.echo(f"[folio]   Remapeados   : {result.remapped}")
    click.echo(f"[folio]     perfect    : {result.by_tier[MatchTier.PERFECT]}")
    click.echo(f"[folio]     close      : {result.by_tier[MatchTier.CLOSE]}")

    rough = result.by_tier[MatchTier.ROUGH]
    if rough:
        click.echo(click.style(f"[folio]     rough      : {rough} (posición aproximada)", fg="yellow"))
    else:
        click.echo(f"[folio]     rough      : 0")

    if result.skipped:
        click.echo(f"[folio]   Omitidos     : {result.skipped} (ya movidos por otro proceso)")
    click.echo("─" * 50)


def _print_page(page: PageResult) -> None:
    if page.notice is not None:
        click.echo(click.style(f"[folio] {describe_notice(page.notice)}", fg="yellow"))

    for block in page.blocks:
        prefix = _BLOCK_PREFIX[block.type]
        click.echo(f"[{block.sequence}] {prefix}{block.content}")

    if page.at_edge:
        click.echo("[folio] No hay más páginas en esa dirección.")


def _abort(message: str) -> None:
    """Error de validación: culpa del usuario."""
    click.echo(click.style(f"[folio] Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _error(message: str) -> None:
    """Error de sistema: no es culpa del usuario."""
    click.echo(click.style(f"[folio] {message}", fg="red"), err=True)
