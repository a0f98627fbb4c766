import os
import sys

import atheris

with atheris.instrument_imports():
    from sdbridge.activation import SD_LISTEN_FDS_START, construct_sockets
    from sdbridge.errors import InvalidVarError
    from sdbridge.utils import parse_unsigned

# Keep descriptor ranges small; construct_sockets materializes one handle per fd
MAX_FDS = 4096


def TestOneInput(data: bytes) -> None:
    """Fuzz $LISTEN_FDS / $LISTEN_FDNAMES decoding for the current PID."""
    fdp = atheris.FuzzedDataProvider(data)
    listen_fds = fdp.ConsumeUnicodeNoSurrogates(8)
    listen_fd_names = fdp.ConsumeUnicodeNoSurrogates(256) if fdp.ConsumeBool() else None

    count = parse_unsigned(listen_fds)
    if count is not None and count > MAX_FDS:
        return

    try:
        handles = construct_sockets(listen_fds, listen_fd_names, str(os.getpid()))
    except InvalidVarError:
        return  # Expected for non-numeric counts

    assert [h.fileno() for h in handles] == list(range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + len(handles)))
    names = [h.name for h in handles]
    assert all(name is None for name in names) or None not in names


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
