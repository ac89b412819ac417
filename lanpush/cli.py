"""
Headless entry point: print this machine's address, run a receiver, or send
one file. Shares the network stack with the GUI but never imports tkinter.
"""

import argparse
import logging
import sys
import threading

from lanpush.adapters.platform_setup import default_platform_setup
from lanpush.network.errors import ServerStartError
from lanpush.network.events import FileReceivedNotifier
from lanpush.network.factory import create_client, create_server
from lanpush.network.interfaces import InterfaceScorer
from lanpush.utils.config_manager import ConfigManager
from lanpush.utils.constants import PROTOCOLS
from lanpush.utils.logger import setup_logging
from lanpush.utils.save_path import SavePathResolver

logger = logging.getLogger("lanpush.cli")


def build_parser(config: ConfigManager) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='lanpush-cli', description='LAN file transfer (headless)')
    parser.add_argument('--log-level', type=str, default=config.log_level,
                        help=f'Logging level (default: {config.log_level})')
    subparsers = parser.add_subparsers(dest='command', required=True)

    address = subparsers.add_parser('address', help='Print the address peers should send to')
    address.add_argument('--all', action='store_true',
                         help='List every scored candidate instead of the best one')

    def add_transfer_options(sub):
        sub.add_argument('--protocol', choices=PROTOCOLS, default=config.protocol,
                         help=f'Transfer variant (default: {config.protocol})')
        sub.add_argument('--port', type=int, default=config.port,
                         help=f'TCP port (default: {config.port})')

    receive = subparsers.add_parser('receive', help='Receive files until interrupted')
    add_transfer_options(receive)
    receive.add_argument('--dir', type=str, default=config.save_directory,
                         help='Directory for received files (default: app data ReceivedFiles)')

    send = subparsers.add_parser('send', help='Send one file to a peer')
    send.add_argument('host', help='Address of the receiving device')
    send.add_argument('file', help='Path of the file to send')
    add_transfer_options(send)
    return parser


def cmd_address(args) -> int:
    scorer = InterfaceScorer()
    if not args.all:
        print(scorer.best_address())
        return 0
    candidates = scorer.rank()
    if not candidates:
        print("No usable IPv4 interface found.")
        return 1
    for candidate in candidates:
        print(f"{candidate.address:<16} score={candidate.score:<3} {candidate.interface_name}")
    return 0


def cmd_receive(args, stop_event: threading.Event | None = None) -> int:
    stop_event = stop_event or threading.Event()
    save_path = SavePathResolver(custom_directory=args.dir)
    notifier = FileReceivedNotifier()
    notifier.subscribe(lambda name: print(f"Received: {name or 'file'}", flush=True))

    server = create_server(args.protocol, save_path, notifier=notifier,
                           platform_setup=default_platform_setup(), port=args.port)
    try:
        server.start()
    except ServerStartError as e:
        logger.error("%s", e)
        return 1

    print(f"Receiving on {InterfaceScorer().best_address()}:{server.port} ({args.protocol}), "
          f"saving to {save_path.resolved_directory()}. Press Ctrl+C to stop.", flush=True)
    try:
        while not stop_event.wait(0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Receiver shutting down...")
    finally:
        server.close()
    return 0


def cmd_send(args) -> int:
    result = create_client(args.protocol, port=args.port).send(args.host, args.file)
    print(result.message)
    return 0 if result.success else 1


COMMANDS = {
    'address': cmd_address,
    'receive': cmd_receive,
    'send': cmd_send,
}


def main(argv=None) -> int:
    config = ConfigManager()
    args = build_parser(config).parse_args(argv)
    setup_logging(args.log_level)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
