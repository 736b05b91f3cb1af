"""Shared TCP utilities for line-oriented admin protocols (Zookeeper, memcached)."""

import asyncio
import logging
from typing import Iterable, List, Tuple

from ..utils.errors import FetchError

DEFAULT_TIMEOUT = 10.0


class SocketHelper:
    """Helper class for plain-text TCP request/reply exchanges."""

    @staticmethod
    async def open(
        host: str,
        port: int,
        logger: logging.Logger,
        timeout: float = DEFAULT_TIMEOUT
    ) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """
        Open a TCP connection.

        Raises:
            FetchError: If the connection cannot be established in time
        """
        logger.debug(f"Connecting to {host}:{port}")
        try:
            return await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out connecting to {host}:{port}") from e
        except OSError as e:
            raise FetchError(f"Unable to connect to {host}:{port}: {e}") from e

    @staticmethod
    async def send_command(
        host: str,
        port: int,
        command: str,
        logger: logging.Logger,
        timeout: float = DEFAULT_TIMEOUT
    ) -> str:
        """
        Send one command and read until the server closes the connection.

        Used for Zookeeper four-letter words, which reply and hang up.

        Args:
            host: Server host
            port: Server port
            command: Command to send, e.g. "mntr"
            logger: Logger instance
            timeout: Timeout in seconds for connect and read

        Returns:
            str: Full reply text

        Raises:
            FetchError: On connection failure or timeout
        """
        reader, writer = await SocketHelper.open(host, port, logger, timeout)
        try:
            writer.write(command.encode())
            await writer.drain()
            data = await asyncio.wait_for(reader.read(), timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out waiting for '{command}' reply from {host}:{port}") from e
        except OSError as e:
            raise FetchError(f"Error sending '{command}' to {host}:{port}: {e}") from e
        finally:
            writer.close()

        logger.debug(f"Received {len(data)} bytes for '{command}' from {host}:{port}")
        return data.decode(errors="replace")

    @staticmethod
    async def send_commands_until(
        host: str,
        port: int,
        commands: Iterable[str],
        terminators: Iterable[str],
        logger: logging.Logger,
        timeout: float = DEFAULT_TIMEOUT
    ) -> List[Tuple[str, List[str]]]:
        """
        Send several commands on one connection, reading each reply up to a terminator line.

        Used for memcached, where "stats" replies end with "END" and errors
        end with "ERROR", "CLIENT_ERROR ..." or "SERVER_ERROR ...".

        Args:
            host: Server host
            port: Server port
            commands: Commands to send in order
            terminators: Line prefixes that end a reply
            logger: Logger instance
            timeout: Timeout in seconds per read

        Returns:
            List of (command, reply lines) pairs; reply lines include the terminator

        Raises:
            FetchError: On connection failure, timeout or early close
        """
        terminators = tuple(terminators)
        replies = []
        reader, writer = await SocketHelper.open(host, port, logger, timeout)
        try:
            for command in commands:
                writer.write(f"{command}\r\n".encode())
                await writer.drain()
                lines = []
                while True:
                    raw = await asyncio.wait_for(reader.readline(), timeout)
                    if not raw:
                        raise FetchError(f"Connection closed by {host}:{port} during '{command}'")
                    line = raw.decode(errors="replace").rstrip("\r\n")
                    lines.append(line)
                    if line.startswith(terminators):
                        break
                replies.append((command, lines))
        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out reading reply from {host}:{port}") from e
        except OSError as e:
            raise FetchError(f"Socket error talking to {host}:{port}: {e}") from e
        finally:
            writer.close()

        return replies
