"""Chooses the transfer variant for a deployment (``http`` or ``stream``)."""

from .http_transfer import HttpTransferClient, HttpTransferServer
from .stream_transfer import StreamTransferClient, StreamTransferServer
from ..utils.constants import APP_PORT, PROTOCOL_HTTP, PROTOCOL_STREAM

SERVER_CLASSES = {
    PROTOCOL_HTTP: HttpTransferServer,
    PROTOCOL_STREAM: StreamTransferServer,
}

CLIENT_CLASSES = {
    PROTOCOL_HTTP: HttpTransferClient,
    PROTOCOL_STREAM: StreamTransferClient,
}


def _lookup(table: dict, protocol: str):
    try:
        return table[protocol.lower()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unknown transfer protocol {protocol!r}, expected one of {sorted(table)}") from None


def create_server(protocol: str, save_path, notifier=None, platform_setup=None, host=None, port: int = APP_PORT):
    server_class = _lookup(SERVER_CLASSES, protocol)
    kwargs = {'notifier': notifier, 'platform_setup': platform_setup, 'port': port}
    if host:
        kwargs['host'] = host
    return server_class(save_path, **kwargs)


def create_client(protocol: str, port: int = APP_PORT):
    return _lookup(CLIENT_CLASSES, protocol)(port=port)
