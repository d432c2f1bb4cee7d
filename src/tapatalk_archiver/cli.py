"""CLI interface for the Tapatalk archiver."""

import logging
from dataclasses import replace

import click

from .config import (
    AUTHOR_MODE, AUTHOR_MODES, BASE_URL, DATABASE, FORUM_END, FORUM_START,
    REQUEST_TIMEOUT, TOPIC_END, TOPIC_START, ArchiverConfig
)
from .database import Archive
from .scraper import ForumArchiver


@click.group()
@click.option(
    '--db',
    'database',
    default=DATABASE,
    show_default=True,
    help='SQLite database file'
)
@click.option(
    '--base-url',
    default=BASE_URL,
    show_default=True,
    help='Root URL of the board'
)
@click.option(
    '--timeout',
    default=REQUEST_TIMEOUT,
    type=float,
    show_default=True,
    help='HTTP timeout in seconds'
)
@click.option(
    '--author-mode',
    default=AUTHOR_MODE,
    type=click.Choice(AUTHOR_MODES),
    show_default=True,
    help='How post authors are read from topic pages'
)
@click.option('-v', '--verbose', is_flag=True, help='Log every fetch and skip')
@click.pass_context
def main(ctx, database, base_url, timeout, author_mode, verbose):
    """Tapatalk archiver - scrape a phpBB board on Tapatalk into SQLite."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    ctx.obj = ArchiverConfig(
        base_url=base_url,
        database=database,
        timeout=timeout,
        author_mode=author_mode,
    )


def _archiver(config: ArchiverConfig) -> ForumArchiver:
    archiver = ForumArchiver(config)
    archiver.setup()
    return archiver


def _range_options(kind, start, end):
    def decorator(f):
        f = click.option('--end', default=end, type=int, show_default=True,
                         help=f'Last {kind} id (inclusive)')(f)
        f = click.option('--start', default=start, type=int, show_default=True,
                         help=f'First {kind} id')(f)
        return f
    return decorator


@main.command()
@click.pass_obj
def setup(config):
    """Create the database and record the scrape ranges."""
    with ForumArchiver(config) as archiver:
        created = archiver.setup()
    if created:
        click.echo(f"Created {config.database}")
    else:
        click.echo(f"{config.database} already exists")


@main.command()
@_range_options('forum', FORUM_START, FORUM_END)
@click.pass_obj
def forums(config, start, end):
    """Scrape forums and the topics they list."""
    with _archiver(replace(config, forum_start=start, forum_end=end)) as archiver:
        saved = archiver.scrape_forums()
    click.echo(f"Forums saved: {saved}")


@main.command()
@click.argument('forum_id', type=int)
@click.pass_obj
def forum(config, forum_id):
    """Scrape a single forum."""
    with _archiver(config) as archiver:
        record = archiver.scrape_forum(forum_id)
    if record is None:
        click.echo(f"Forum {forum_id} not found")
    else:
        click.echo(f"Forum {forum_id}: {record.name} ({record.topic_count} topics)")


@main.command()
@_range_options('topic', TOPIC_START, TOPIC_END)
@click.pass_obj
def topics(config, start, end):
    """Scrape topics and all of their posts."""
    with _archiver(replace(config, topic_start=start, topic_end=end)) as archiver:
        saved = archiver.scrape_topics()
    click.echo(f"Posts saved: {saved}")


@main.command()
@click.argument('topic_id', type=int)
@click.pass_obj
def topic(config, topic_id):
    """Scrape a single topic."""
    with _archiver(config) as archiver:
        saved = archiver.scrape_topic(topic_id)
    click.echo(f"Topic {topic_id}: {saved} posts")


@main.command()
@click.pass_obj
def members(config):
    """Back-fill profiles of every user seen so far."""
    with _archiver(config) as archiver:
        saved = archiver.scrape_members()
    click.echo(f"Profiles saved: {saved}")


@main.command()
@click.argument('user_id', type=int)
@click.pass_obj
def member(config, user_id):
    """Scrape a single member profile."""
    with _archiver(config) as archiver:
        found = archiver.scrape_member(user_id)
    click.echo(f"Member {user_id}: {'saved' if found else 'not found'}")


@main.command(name='all')
@click.pass_obj
def all_passes(config):
    """Run the forum, topic and member passes in order."""
    with ForumArchiver(config) as archiver:
        results = archiver.run()
    click.echo(
        f"Forums: {results['forums']}, posts: {results['posts']}, "
        f"profiles: {results['members']}"
    )


@main.command()
@click.pass_obj
def stats(config):
    """Show row counts of the archive."""
    archive = Archive(config.database)
    archive.setup(config.range_settings())

    click.echo("\n" + "="*60)
    click.echo("Tapatalk Archive Statistics")
    click.echo("="*60)
    for table, count in archive.counts().items():
        click.echo(f"{table:<15} {count}")
    click.echo("="*60 + "\n")


if __name__ == '__main__':
    main()
