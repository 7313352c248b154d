import argparse
import asyncio
import logging
import sys

from wgconf.errors import WgConfError
from wgconf.peers import init_conf
from wgconf.settings import DEFAULT_SETTINGS_PATH, load_settings, make_allocator
from wgconf import wireguard
from wgconf.wireguard import WireGuardManager


async def run(args, settings, executor=None):
    manager = WireGuardManager(
        args.config or settings['config_path'],
        interface=args.interface or settings['interface'],
        executor=executor,
        allocator=make_allocator(settings),
        live_sync=settings['live_sync'] and not args.no_sync,
    )

    if args.command == 'init':
        keys = await wireguard.generate_keys(executor=manager.executor)
        await init_conf(manager.store, keys.private_key,
                        port=args.port or settings['listen_port'],
                        ip=settings['server_address'],
                        wan_interface=args.wan or settings['wan_interface'])
        print(f"Server public key: {keys.public_key}")
    elif args.command == 'add':
        fields = {
            'allowed_ips': args.allowed_ips,
            'preshared_key': args.preshared_key,
            'persistent_keepalive': args.keepalive,
            'endpoint': args.endpoint,
        }
        if args.psk:
            fields['preshared_key'] = await wireguard.generate_preshared_key(executor=manager.executor)
        fields = {k: v for k, v in fields.items() if v is not None}
        if args.public_key:
            result = await manager.add_peer(args.public_key, **fields)
        else:
            result = await manager.new_client(**fields)
            print(f"Private key: {result['privateKey']}")
            print(f"Public key:  {result['publicKey']}")
        print(f"Assigned {result['ip']}")
    elif args.command == 'delete':
        result = await manager.delete_peer(args.public_key)
        if not result['deleted']:
            print("No such peer")
    elif args.command == 'list':
        for peer in await manager.list_peers():
            print(f"{peer.public_key}  {', '.join(peer.allowed_ips)}")
    elif args.command == 'status':
        for info in await manager.handshakes():
            print(f"{info.public_key}  {info.endpoint or '-'}  {info.latest_handshake or 'never'}")
    elif args.command == 'sync':
        await wireguard.sync_conf(manager.interface, manager.executor)
    elif args.command == 'up':
        await wireguard.up(manager.interface, manager.executor)
    elif args.command == 'down':
        await wireguard.down(manager.interface, manager.executor)
    elif args.command == 'check':
        installed = await wireguard.check_wg(manager.executor)
        print("WireGuard is installed" if installed else "WireGuard is not installed")
    elif args.command == 'install':
        await wireguard.install_wg(force=args.force, executor=manager.executor)
    return manager


def build_parser():
    parser = argparse.ArgumentParser(description="Manage WireGuard peers")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH)
    parser.add_argument("-c", "--config", help="WireGuard configuration file")
    parser.add_argument("-i", "--interface")
    parser.add_argument("--no-sync", action="store_true", help="do not apply changes to the running interface")
    sub = parser.add_subparsers(dest="command", required=True)

    init_parser = sub.add_parser("init", help="create a server configuration")
    init_parser.add_argument("--port", type=int)
    init_parser.add_argument("--wan", help="outbound interface for NAT")

    add_parser = sub.add_parser("add", help="add a peer")
    add_parser.add_argument("public_key", nargs="?", help="generate a key pair when omitted")
    add_parser.add_argument("--allowed-ips")
    add_parser.add_argument("--preshared-key")
    add_parser.add_argument("--psk", action="store_true", help="generate a preshared key")
    add_parser.add_argument("--keepalive", type=int)
    add_parser.add_argument("--endpoint")

    delete_parser = sub.add_parser("delete", help="remove a peer")
    delete_parser.add_argument("public_key")

    for name in ("list", "status", "sync", "up", "down", "check"):
        sub.add_parser(name)

    install_parser = sub.add_parser("install", help="install wireguard-tools")
    install_parser.add_argument("--force", action="store_true")
    return parser


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = build_parser().parse_args()
    settings = load_settings(args.settings)
    try:
        asyncio.run(run(args, settings))
    except (WgConfError, OSError) as exc:
        logging.error("%s", exc)
        sys.exit(1)
