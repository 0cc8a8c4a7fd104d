from __future__ import annotations

import errno
import logging
import socket
import sys
import time
from typing import Optional

import uvicorn

from storefront.config import settings

logger = logging.getLogger(__name__)

RETRY_DELAY = 0.2


class NoFreePort(RuntimeError):
    pass


def bind_socket(host: str, port: int, attempts: int = 5, delay: float = RETRY_DELAY) -> socket.socket:
    """
    Bind ``port``; when it is taken try the next one, ``attempts`` times in total.
    Raises NoFreePort when every port was taken, any other OSError as is.
    """
    for i in range(attempts):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            if e.errno != errno.EADDRINUSE:
                raise
            logger.warning("Port %d in use, trying next port...", port)
            if i + 1 < attempts:
                port += 1
                time.sleep(delay)
            continue
        sock.set_inheritable(True)
        return sock
    raise NoFreePort(f"no free port after {attempts} attempts")


def serve(host: Optional[str] = None, port: Optional[int] = None, attempts: Optional[int] = None) -> None:
    try:
        sock = bind_socket(
            host or settings.host,
            settings.port if port is None else port,
            settings.port_attempts if attempts is None else attempts,
        )
    except NoFreePort:
        logger.error("No available ports found after multiple attempts. Please free the port or set PORT env var.")
        sys.exit(1)
    except OSError:
        logger.exception("Server error")
        sys.exit(1)

    bound_host, bound_port = sock.getsockname()[:2]
    logger.info("Storefront backend running on http://localhost:%d", bound_port)

    config = uvicorn.Config("storefront.web.main:app", host=bound_host, port=bound_port, log_level="info")
    uvicorn.Server(config).run(sockets=[sock])


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    serve()


if __name__ == "__main__":
    main()
