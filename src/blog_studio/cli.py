"""CLI interface for the blog studio."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from blog_studio.config import StudioConfig, load_config, merge_cli_overrides
from blog_studio.content.models import GenerationRequest, Length, Tone
from blog_studio.content.store import check_password
from blog_studio.errors import RateLimitError, StudioError
from blog_studio.studio import Studio

app = typer.Typer(
    name="blog-studio",
    help="Generate blog posts with AI, narrate them and publish to Storyblok.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from blog_studio import __version__

        console.print(f"blog-studio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .blog-studio.toml file."),
    ] = None,
    data_dir: Annotated[
        Optional[str],
        typer.Option("--data-dir", help="Directory holding the local storage file."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", help="LLM provider: mistral or anthropic."),
    ] = None,
    use_tts_server: Annotated[
        Optional[bool],
        typer.Option("--tts-server/--no-tts-server", help="Narrate through the TTS endpoint."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """AI Blog Studio - generate, narrate and publish posts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(
        config,
        data_dir=data_dir,
        provider=provider,
        use_tts_server=use_tts_server,
    )


def _build_studio(config: StudioConfig) -> Studio:
    return Studio.from_config(config)


def _studio(ctx: typer.Context, *, admin: bool = True) -> Studio:
    studio = _build_studio(ctx.obj)
    if admin and not studio.store.is_authenticated():
        console.print("[red]Error:[/red] Not logged in. Run `blog-studio login` first.")
        raise typer.Exit(1)
    return studio


@contextmanager
def _errors() -> Iterator[None]:
    """Print studio failures in red and exit 1."""
    try:
        yield
    except RateLimitError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        console.print(f"Quota resets at {_format_ms(exc.reset_time)}")
        raise typer.Exit(1) from exc
    except StudioError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _format_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


# ── Session ──────────────────────────────────────────────────────────────


@app.command()
def login(
    ctx: typer.Context,
    password: Annotated[
        str,
        typer.Option("--password", "-p", prompt=True, hide_input=True, help="Admin password."),
    ],
) -> None:
    """Start a 24-hour admin session."""
    config: StudioConfig = ctx.obj
    if not config.studio.admin_password:
        console.print("[red]Error:[/red] ADMIN_PASSWORD is not configured.")
        raise typer.Exit(1)
    if not check_password(password, config.studio.admin_password):
        console.print("[red]Error:[/red] Invalid password.")
        raise typer.Exit(1)
    _studio(ctx, admin=False).store.set_authenticated()
    console.print("[green]Logged in.[/green]")


@app.command()
def logout(ctx: typer.Context) -> None:
    """End the admin session."""
    _studio(ctx, admin=False).store.clear_auth()
    console.print("Logged out.")


# ── Posts ────────────────────────────────────────────────────────────────


@app.command()
def generate(
    ctx: typer.Context,
    theme: Annotated[str, typer.Argument(help="What the post is about.")],
    tone: Annotated[Tone, typer.Option("--tone", "-t", help="Writing tone.")] = Tone.PROFESSIONAL,
    length: Annotated[Length, typer.Option("--length", "-l", help="Post length.")] = Length.MEDIUM,
) -> None:
    """Generate a new post and its hero image."""
    studio = _studio(ctx)
    with _errors():
        with console.status("Generating content and image..."):
            post = studio.generate(GenerationRequest(theme=theme, tone=tone, length=length))
    console.print(f"[green]Generated:[/green] {post.title}")
    console.print(f"  ID: {post.id}")
    console.print(f"  Image: {post.image_url}")
    console.print(f"  Requests left this hour: {studio.rate_limit().remaining}")


@app.command(name="list")
def list_cmd(ctx: typer.Context) -> None:
    """List local posts, newest first."""
    studio = _studio(ctx)
    posts = studio.posts()
    if not posts:
        console.print("[yellow]No posts yet.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Posts")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Audio")
    table.add_column("Created")
    for post in posts:
        table.add_row(
            post.id,
            post.title,
            str(post.status),
            str(post.audio_status or "-"),
            post.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
) -> None:
    """Print one post."""
    studio = _studio(ctx)
    with _errors():
        post = studio.get(post_id)
    console.print(f"[bold]{post.title}[/bold]")
    console.print(f"[dim]{post.status} | {post.tone} | {post.length} | {post.theme}[/dim]")
    if post.storyblok_id:
        console.print(f"Storyblok story: {post.storyblok_id}")
    if post.excerpt:
        console.print(f"[italic]{post.excerpt}[/italic]")
    console.print()
    console.print(Markdown(post.content))


@app.command()
def edit(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
    title: Annotated[Optional[str], typer.Option("--title", help="New title.")] = None,
    excerpt: Annotated[Optional[str], typer.Option("--excerpt", help="New excerpt.")] = None,
    content_file: Annotated[
        Optional[Path],
        typer.Option("--content-file", help="Markdown file with the new body.", exists=True, dir_okay=False),
    ] = None,
    image_url: Annotated[Optional[str], typer.Option("--image-url", help="New image URL.")] = None,
) -> None:
    """Edit a post locally. Publish again to push the change."""
    changes: dict[str, str] = {}
    if title is not None:
        changes["title"] = title
    if excerpt is not None:
        changes["excerpt"] = excerpt
    if content_file is not None:
        changes["content"] = content_file.read_text(encoding="utf-8")
    if image_url is not None:
        changes["image_url"] = image_url
    if not changes:
        console.print("[yellow]Nothing to change.[/yellow]")
        raise typer.Exit(0)

    studio = _studio(ctx)
    with _errors():
        post = studio.edit(post_id, **changes)
    console.print(f"[green]Updated:[/green] {post.title}")


@app.command()
def regenerate(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
) -> None:
    """Generate the post again with its original options."""
    studio = _studio(ctx)
    with _errors():
        with console.status("Regenerating..."):
            post = studio.regenerate(post_id)
    console.print(f"[green]Regenerated:[/green] {post.title}")


@app.command()
def delete(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
) -> None:
    """Delete a local post. The Storyblok story is kept."""
    studio = _studio(ctx)
    with _errors():
        post = studio.get(post_id)
        if not yes and not typer.confirm(f"Delete '{post.title}'?"):
            raise typer.Exit(0)
        studio.delete(post_id)
    console.print(f"Deleted {post_id}")


# ── CMS ──────────────────────────────────────────────────────────────────


@app.command()
def publish(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
) -> None:
    """Publish a post to Storyblok, updating its story if it exists."""
    studio = _studio(ctx)
    with _errors():
        with console.status("Publishing to Storyblok..."):
            post = studio.publish(post_id)
    console.print(f"[green]Published:[/green] {post.title}")
    console.print(f"  Story ID: {post.storyblok_id}")


@app.command()
def audio(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post ID.")],
) -> None:
    """Narrate a post; published posts get the audio on their story too."""
    studio = _studio(ctx)
    with _errors():
        with console.status("Generating audio..."):
            post = studio.generate_audio(post_id)
    console.print(f"[green]Audio ready[/green] for {post.title}")


@app.command()
def stories(ctx: typer.Context) -> None:
    """List published stories from the Storyblok CDN."""
    published = _studio(ctx, admin=False).stories()
    if not published:
        console.print("[yellow]No published stories found.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Published stories")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Slug")
    table.add_column("Audio")
    for story in published:
        table.add_row(
            str(story.id),
            story.content.title or story.name,
            story.full_slug,
            "yes" if story.content.audio_url else "-",
        )
    console.print(table)


@app.command()
def limit(ctx: typer.Context) -> None:
    """Show the remaining generation quota."""
    status = _studio(ctx, admin=False).rate_limit()
    if status.is_limited:
        console.print("[red]Rate limit reached.[/red]")
    console.print(f"Remaining: {status.remaining}")
    console.print(f"Resets at: {_format_ms(status.reset_time)}")


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str, typer.Option("--host", help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port.")] = 8888,
) -> None:
    """Run the text-to-speech endpoint."""
    import uvicorn

    from blog_studio.server import TTS_PATH, create_app

    console.print(f"Serving http://{host}:{port}{TTS_PATH}")
    uvicorn.run(create_app(ctx.obj), host=host, port=port)
