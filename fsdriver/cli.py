import os
import sys
import uuid
import asyncio
import logging
import argparse
from typing import List, Optional

import asyncio_pool

from fsdriver.filesystem import Filesystem
from fsdriver.jobs import JobHost, message_for
from fsdriver.local import LocalFilesystem
from fsdriver.servers import ServerModel, ServersRepository
from fsdriver.utils.entry import FSEntry, FSTree
from fsdriver.utils.errors import FSError
from fsdriver.utils.properties import FSProperties
from fsdriver.utils.result import Result
from fsdriver.utils.sorter import sort_entries
from fsdriver.utils.text import LineBreak, TextParams

DEFAULT_SERVERS_DB = os.path.join('~', '.fsdriver', 'servers.db')


class CLI:
    """Filesystem commands.

    Attributes
    ----------
    filesystem : Filesystem
        Filesystem driver.
    host : JobHost
        Job host for compress/extract.
    """

    def __init__(self, filesystem: Filesystem, show_progress: bool = True):
        self.filesystem = filesystem
        self.host = JobHost(filesystem, notify=print, show_progress=show_progress)

    async def list(self, path: Optional[str] = None, sort: str = 'name', reverse: bool = False) -> FSTree:
        """List directory, default location if `path` is not set."""
        parent = FSEntry.of(path, 'dir') if path else None
        tree = await self.filesystem.list_children(parent)
        return FSTree(tree.root, sort_entries(tree.children, sort, reverse=reverse))

    async def properties(self, paths: List[str], num_workers: int = 16) -> List[FSProperties]:
        """Calculate properties of several entries.

        Parameters
        ----------
        paths : List[str]
            Entry paths.
        num_workers : int, default=16
            Max workers.

        Returns
        -------
        List[FSProperties]
            Properties in `paths` order.
        """
        futures = []
        async with asyncio_pool.AioPool(size=num_workers) as pool:
            for path in paths:
                futures.append(await pool.spawn(self.filesystem.properties_of(FSEntry.of(path))))
        return [future.result() for future in futures]

    async def copy(self, paths: List[str], dest: str, num_workers: int = 16) -> List[FSEntry]:
        """Copy several entries into directory.

        Parameters
        ----------
        paths : List[str]
            Source paths.
        dest : str
            Destination directory.
        num_workers : int, default=16
            Max workers.

        Returns
        -------
        List[FSEntry]
            Copied entries.
        """
        futures = []
        async with asyncio_pool.AioPool(size=num_workers) as pool:
            for path in paths:
                futures.append(await pool.spawn(self.filesystem.copy(FSEntry.of(path), FSEntry.of(dest, 'dir'))))
        return [future.result() for future in futures]

    async def compress(self, paths: List[str], dest: str, archive_name: str) -> Result[List[FSEntry]]:
        entries = [FSEntry.of(path) for path in paths] + [FSEntry.of(dest, 'dir')]
        return await self.host.schedule_compress(entries, archive_name).wait()

    async def extract(self, path: str, dest: str) -> Result[List[FSEntry]]:
        return await self.host.schedule_extract([FSEntry.of(path), FSEntry.of(dest, 'dir')]).wait()


def _print_entry(entry: FSEntry) -> None:
    kind = 'd' if entry.is_dir else '-'
    modified = entry.last_modified.strftime('%Y-%m-%d %H:%M') if entry.last_modified else ''
    print(f'{kind} {entry.size:>12} {modified:>16} {entry.name}')


def _print_properties(properties: FSProperties) -> None:
    print(properties.absolute_path)
    print(f'  modified:    {properties.formatted_last_modified}')
    print(f'  size:        {properties.formatted_size}')
    print(f'  lines:       {properties.line_count}')
    print(f'  words:       {properties.word_count}')
    print(f'  characters:  {properties.char_count}')
    flags = ''.join(flag if value else '-' for flag, value in zip(
        'rwx', (properties.readable, properties.writable, properties.executable)
    ))
    print(f'  permissions: {flags}')


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fsdriver',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='to see action help message:\n  fsdriver ls -h\n  fsdriver compress -h'
    )
    parser.add_argument('--root', type=str, default=os.getcwd(), help='default location')
    parser.add_argument('--config_path', type=str, help='path to configuration file')
    parser.add_argument('--workers', type=int, default=16, help='max workers')
    parser.add_argument('--verbose', action='store_true', help='debug logging')
    subparsers = parser.add_subparsers(dest='action')
    subparsers.required = True

    ls_parser = subparsers.add_parser('ls', help='list directory')
    ls_parser.add_argument('path', nargs='?', type=str, help='directory path')
    ls_parser.add_argument('--sort', choices=['name', 'size', 'date'], default='name', help='sort key')
    ls_parser.add_argument('--reverse', action='store_true', help='reverse order')
    subparsers.add_parser('mkdir', help='create directory').add_argument('path', type=str)
    subparsers.add_parser('touch', help='create file').add_argument('path', type=str)
    mv_parser = subparsers.add_parser('mv', help='rename file or directory')
    mv_parser.add_argument('path', type=str)
    mv_parser.add_argument('new_name', type=str)
    subparsers.add_parser('rm', help='delete file or directory').add_argument('path', type=str)
    cp_parser = subparsers.add_parser('cp', help='copy files or directories')
    cp_parser.add_argument('paths', nargs='+', type=str)
    cp_parser.add_argument('dest', type=str)
    subparsers.add_parser('props', help='show properties').add_argument('paths', nargs='+', type=str)
    for name, help_message in [('cat', 'print text file'), ('write', 'write stdin to text file')]:
        text_parser = subparsers.add_parser(name, help=help_message)
        text_parser.add_argument('path', type=str)
        text_parser.add_argument('--charset', type=str, default='utf-8', help='text charset')
        text_parser.add_argument('--detect', action='store_true', help='detect charset')
        text_parser.add_argument('--line_break', choices=[lb.name for lb in LineBreak], default='LF')
    compress_parser = subparsers.add_parser('compress', help='compress into zip archive')
    compress_parser.add_argument('paths', nargs='+', type=str)
    compress_parser.add_argument('--dest', required=True, type=str, help='destination directory')
    compress_parser.add_argument('--name', required=True, type=str, help='archive name')
    extract_parser = subparsers.add_parser('extract', help='extract zip archive')
    extract_parser.add_argument('path', type=str)
    extract_parser.add_argument('--dest', required=True, type=str, help='destination directory')
    servers_parser = subparsers.add_parser('servers', help='manage connection profiles')
    servers_parser.add_argument('command', choices=['list', 'add', 'remove'])
    servers_parser.add_argument('--db_path', type=str, default=DEFAULT_SERVERS_DB, help='profile database')
    servers_parser.add_argument('--uuid', type=str)
    servers_parser.add_argument('--scheme', type=str, default='ftp')
    servers_parser.add_argument('--name', type=str)
    servers_parser.add_argument('--address', type=str)
    servers_parser.add_argument('--port', type=int, default=21)
    servers_parser.add_argument('--username', type=str, default='')
    return parser


async def _servers(args: argparse.Namespace) -> None:
    db_path = os.path.expanduser(args.db_path)
    os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)
    repository = ServersRepository(db_path)
    if args.command == 'list':
        for server in await repository.load_servers():
            print(f'{server.uuid}  {server.scheme}://{server.username}@{server.address}:{server.port}  {server.name}')
    elif args.command == 'add':
        if not args.name or not args.address:
            raise ValueError('--name and --address are required')
        server = ServerModel(
            uuid=args.uuid or str(uuid.uuid4()), scheme=args.scheme, name=args.name,
            address=args.address, port=args.port, username=args.username
        )
        await repository.upsert_server(server)
        print(server.uuid)
    else:
        if not args.uuid:
            raise ValueError('--uuid is required')
        await repository.delete_server(ServerModel(args.uuid, args.scheme, '', '', args.port))


async def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    if args.action == 'servers':
        await _servers(args)
        return 0

    filesystem = LocalFilesystem.from_yaml(args.config_path) if args.config_path else LocalFilesystem(args.root)
    cli = CLI(filesystem)
    try:
        if args.action == 'ls':
            tree = await cli.list(args.path, sort=args.sort, reverse=args.reverse)
            for entry in tree.children:
                _print_entry(entry)
        elif args.action in ('mkdir', 'touch'):
            entry = await filesystem.create(FSEntry.of(args.path, 'dir' if args.action == 'mkdir' else 'file'))
            print(entry.path)
        elif args.action == 'mv':
            print((await filesystem.rename(FSEntry.of(args.path), args.new_name)).path)
        elif args.action == 'rm':
            await filesystem.delete(FSEntry.of(args.path))
        elif args.action == 'cp':
            for entry in await cli.copy(args.paths, args.dest, num_workers=args.workers):
                print(entry.path)
        elif args.action == 'props':
            for properties in await cli.properties(args.paths, num_workers=args.workers):
                _print_properties(properties)
        elif args.action in ('cat', 'write'):
            params = TextParams(args.charset, args.detect, LineBreak.parse(args.line_break))
            if args.action == 'cat':
                sys.stdout.write(await filesystem.load(FSEntry.of(args.path), params))
            else:
                await filesystem.save(FSEntry.of(args.path), sys.stdin.read(), params)
        elif args.action == 'compress':
            return 0 if (await cli.compress(args.paths, args.dest, args.name)).ok else 1
        elif args.action == 'extract':
            return 0 if (await cli.extract(args.path, args.dest)).ok else 1
        else:
            raise ValueError(f"invalid action: '{args.action}'")
    except FSError as err:
        print(f'{message_for(err)}: {err}', file=sys.stderr)
        return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
