#!/usr/bin/env python3
"""
Document Repository command-line tool
Runs single operations against the configured repository, or serves it over HTTP
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError
from rich.console import Console

from docstore import Repository, RepositoryError
from web.core.config import Settings, get_settings
from web.core.repository import build_repository

console = Console()
logger = logging.getLogger(__name__)

KINDS = ("citation", "draft", "document", "type")
IMMUTABLE_KINDS = ("citation", "document", "type")

EXIT_OK = 0
EXIT_ABSENT = 1
EXIT_ERROR = 2


def read_payload(value: str) -> str:
    """Use the argument as the payload, or read stdin when it is '-'"""
    if value == "-":
        return sys.stdin.read()
    return value


def describe(kind: str, identifiers: List[str]) -> str:
    return f"{kind} '{'/'.join(identifiers)}'"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='docstore',
        description='Document Repository - write-once documents, drafts and message queues',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docstore create citation bali/doc-1 '{"tag": "doc", ...}'
  docstore create document doc-1 v1.0 - < document.bali
  docstore fetch document doc-1 v1.0
  docstore save-draft doc-1 v1.1 'work in progress'
  docstore enqueue jobs 'job payload'
  docstore dequeue jobs
  docstore serve --port 8000

The repository is configured with DOCSTORE_* environment variables or a .env file.
        """
    )
    commands = parser.add_subparsers(dest='command', required=True)

    exists = commands.add_parser('exists', help='Check whether a record exists')
    exists.add_argument('kind', choices=KINDS)
    exists.add_argument('identifiers', nargs='+', metavar='ID',
                        help='Citation name, or tag and version')

    fetch = commands.add_parser('fetch', help='Print a record')
    fetch.add_argument('kind', choices=KINDS)
    fetch.add_argument('identifiers', nargs='+', metavar='ID',
                       help='Citation name, or tag and version')

    create = commands.add_parser('create', help='Create a write-once record')
    create.add_argument('kind', choices=IMMUTABLE_KINDS)
    create.add_argument('identifiers', nargs='+', metavar='ID',
                        help='Citation name, or tag and version')
    create.add_argument('payload', help="Record content, or '-' to read stdin")

    save_draft = commands.add_parser('save-draft', help='Save or replace a draft')
    save_draft.add_argument('tag')
    save_draft.add_argument('version')
    save_draft.add_argument('payload', help="Draft content, or '-' to read stdin")

    delete_draft = commands.add_parser('delete-draft', help='Delete a draft')
    delete_draft.add_argument('tag')
    delete_draft.add_argument('version')

    enqueue = commands.add_parser('enqueue', help='Add a message to a queue')
    enqueue.add_argument('queue')
    enqueue.add_argument('payload', help="Message content, or '-' to read stdin")

    dequeue = commands.add_parser('dequeue', help='Remove and print an arbitrary message')
    dequeue.add_argument('queue')

    serve = commands.add_parser('serve', help='Serve the repository over HTTP')
    serve.add_argument('--host', default='127.0.0.1', help='Interface to bind (default: 127.0.0.1)')
    serve.add_argument('--port', type=int, default=8000, help='Port to bind (default: 8000)')
    serve.add_argument('--reload', action='store_true', help='Reload on code changes')

    return parser


def check_identifiers(parser: argparse.ArgumentParser, kind: str, identifiers: List[str]) -> None:
    expected = 1 if kind == "citation" else 2
    if len(identifiers) != expected:
        if expected == 1:
            parser.error(f"{kind} takes a single name")
        parser.error(f"{kind} takes a tag and a version")


async def record_exists(repository: Repository, kind: str, identifiers: List[str]) -> bool:
    if kind == "citation":
        return await repository.citation_exists(*identifiers)
    if kind == "draft":
        return await repository.draft_exists(*identifiers)
    if kind == "document":
        return await repository.document_exists(*identifiers)
    return await repository.type_exists(*identifiers)


async def fetch_record(repository: Repository, kind: str, identifiers: List[str]) -> Optional[str]:
    if kind == "citation":
        return await repository.fetch_citation(*identifiers)
    if kind == "draft":
        return await repository.fetch_draft(*identifiers)
    if kind == "document":
        return await repository.fetch_document(*identifiers)
    return await repository.fetch_type(*identifiers)


async def create_record(repository: Repository, kind: str, identifiers: List[str], payload: str) -> None:
    if kind == "citation":
        await repository.create_citation(identifiers[0], payload)
    elif kind == "document":
        await repository.create_document(identifiers[0], identifiers[1], payload)
    else:
        await repository.create_type(identifiers[0], identifiers[1], payload)


async def execute(repository: Repository, args: argparse.Namespace) -> int:
    """Run one repository command and return the exit status"""
    async with repository:
        if args.command == 'exists':
            if await record_exists(repository, args.kind, args.identifiers):
                console.print(f"[green]{describe(args.kind, args.identifiers)} exists[/green]")
                return EXIT_OK
            console.print(f"[yellow]{describe(args.kind, args.identifiers)} not found[/yellow]")
            return EXIT_ABSENT

        if args.command == 'fetch':
            value = await fetch_record(repository, args.kind, args.identifiers)
            if value is None:
                console.print(f"[yellow]{describe(args.kind, args.identifiers)} not found[/yellow]")
                return EXIT_ABSENT
            console.out(value, highlight=False)
            return EXIT_OK

        if args.command == 'create':
            await create_record(repository, args.kind, args.identifiers, read_payload(args.payload))
            console.print(f"[green]✓ Created {describe(args.kind, args.identifiers)}[/green]")
            return EXIT_OK

        if args.command == 'save-draft':
            await repository.save_draft(args.tag, args.version, read_payload(args.payload))
            console.print(f"[green]✓ Saved draft '{args.tag}/{args.version}'[/green]")
            return EXIT_OK

        if args.command == 'delete-draft':
            await repository.delete_draft(args.tag, args.version)
            console.print(f"[green]✓ Deleted draft '{args.tag}/{args.version}'[/green]")
            return EXIT_OK

        if args.command == 'enqueue':
            await repository.enqueue_message(args.queue, read_payload(args.payload))
            console.print(f"[green]✓ Queued message on '{args.queue}'[/green]")
            return EXIT_OK

        if args.command == 'dequeue':
            message = await repository.dequeue_message(args.queue)
            if message is None:
                console.print(f"[yellow]Queue '{args.queue}' is empty[/yellow]")
                return EXIT_ABSENT
            console.out(message, highlight=False)
            return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    console.print(f"[cyan]Serving {settings.backend} repository on http://{args.host}:{args.port}[/cyan]")
    uvicorn.run(
        "web.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower()
    )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, 'kind', None) is not None:
        check_identifiers(parser, args.kind, args.identifiers)

    try:
        settings = get_settings()
    except ValidationError as e:
        console.print("Invalid configuration:", style="red")
        for error in e.errors():
            console.print(f"  {error['msg']}", style="red", markup=False)
        return EXIT_ERROR

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == 'serve':
        return serve(settings, args)

    try:
        return asyncio.run(execute(build_repository(settings), args))
    except RepositoryError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
