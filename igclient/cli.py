import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from .client import IgApiClient
from .config import ClientConfig, load_config
from .errors import AppError, ConfigError, SessionFormatError, UserIdNotFound
from .state import SessionState, load_session, save_session

log = logging.getLogger('igclient')


async def _open_session(path: str) -> Optional[SessionState]:
    if not os.path.exists(path):
        log.error('No session at %s, run "generate" first', path)
        return None
    return await load_session(path)


async def cmd_generate(config: ClientConfig, args) -> int:
    path = config.session_path
    if os.path.exists(path) and not args.force:
        log.error('%s exists, pass --force to overwrite', path)
        return 1
    state = SessionState()
    state.generate_device(args.seed)
    await save_session(state, path)
    print(state.device_id)
    return 0


async def cmd_info(config: ClientConfig, args) -> int:
    state = await _open_session(config.session_path)
    if state is None:
        return 1
    try:
        user_id = state.extract_user_id()
    except UserIdNotFound:
        user_id = '-'
    print(f'device:     {state.device_id} ({state.device_string})')
    print(f'user-agent: {state.app_user_agent}')
    print(f'user id:    {user_id}')
    print(f'csrf token: {state.cookie_csrf_token}')
    print(f'checkpoint: {"yes" if state.checkpoint else "no"}')
    return 0


async def cmd_tag_search(config: ClientConfig, args) -> int:
    state = await _open_session(config.session_path)
    if state is None:
        return 1
    state.proxy_url = config.proxy_url
    async with IgApiClient(config, state) as client:
        try:
            body = await client.tag.search(args.query)
        except AppError as exc:
            log.error('Tag search: %s (%s)', exc, exc.kind.value)
            await save_session(state, config.session_path)
            return 1
    print(json.dumps(body, indent=2, ensure_ascii=False))
    await save_session(state, config.session_path)
    return 0


COMMANDS = {
    'generate': cmd_generate,
    'info': cmd_info,
    'tag-search': cmd_tag_search,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='igclient',
        description=(
            'Signed request layer for the Instagram'
            ' private API'))
    parser.add_argument(
        '--config', '-c',
        default='config.json')
    parser.add_argument(
        '--session', '-s', default=None,
        help='Session file (default: config session_path)')
    parser.add_argument(
        '--proxy', '-p', default=None,
        help='Proxy URL (http, https or socks)')
    parser.add_argument(
        '--attempts', type=int, default=None,
        help='Send attempts per call (default 1)')
    parser.add_argument(
        '--verbose', '-v', action='store_true')

    sub = parser.add_subparsers(dest='command', required=True)
    gen = sub.add_parser(
        'generate', help='Create a session from a device seed')
    gen.add_argument('--seed', required=True)
    gen.add_argument('--force', action='store_true')
    sub.add_parser('info', help='Show session identity')
    search = sub.add_parser(
        'tag-search', help='Search hashtags')
    search.add_argument('query')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=(logging.DEBUG if args.verbose
               else logging.INFO),
        format='%(asctime)s [%(levelname)s] %(message)s')

    try:
        config = load_config(args.config)

        overrides: Dict[str, Any] = {}
        if args.session is not None:
            overrides['session_path'] = args.session
        if args.proxy is not None:
            overrides['proxy_url'] = args.proxy
        if args.attempts is not None:
            overrides['max_attempts'] = args.attempts
        if args.verbose:
            overrides['debug_requests'] = True
        if overrides:
            config = config.with_overrides(**overrides)
            config.validate()

        return asyncio.run(COMMANDS[args.command](config, args))
    except ConfigError as exc:
        log.error('Config error: %s', exc)
        return 1
    except SessionFormatError as exc:
        log.error('Session error: %s', exc)
        return 1


if __name__ == '__main__':
    sys.exit(main())
