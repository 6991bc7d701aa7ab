import asyncio


def get_remote_addr(transport: asyncio.BaseTransport) -> tuple[str, int] | None:
    socket_info = transport.get_extra_info("socket")
    if socket_info is not None:
        try:
            info = socket_info.getpeername()
            return _as_endpoint(info)
        except OSError:
            return None

    info = transport.get_extra_info("peername")
    return _as_endpoint(info)


def _as_endpoint(info) -> tuple[str, int] | None:
    # AF_INET6 addresses carry flowinfo and scope_id after (host, port)
    if isinstance(info, (list, tuple)) and len(info) >= 2:
        return str(info[0]), int(info[1])
    return None
