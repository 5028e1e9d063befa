"""Line-by-line draining of subprocess output channels."""

import asyncio

from mcp_py_env.types import Sink
from mcp_py_env.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


def _deliver(raw: bytes, sink: Sink, channel: str, encoding: str) -> bool:
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    try:
        line = raw.decode(encoding)
    except UnicodeDecodeError as e:
        # Undecodable lines are dropped, never delivered half-decoded
        logger.debug(
            {"event": "line_dropped", "channel": channel, "size": len(raw), "error": str(e)}
        )
        return False
    sink(line)
    return True


async def stream_lines(
    reader: asyncio.StreamReader,
    sink: Sink,
    *,
    channel: str = "stdout",
    encoding: str = "utf-8",
) -> int:
    """Deliver each line read from ``reader`` to ``sink`` until EOF.

    Lines are split on ``\\n`` with a trailing ``\\r`` removed. A final line
    without a terminator is delivered once the stream ends. Lines that do not
    decode with ``encoding`` are skipped.

    Returns:
        Number of lines delivered to the sink
    """
    delivered = 0
    pending = bytearray()

    while chunk := await reader.read(CHUNK_SIZE):
        pending.extend(chunk)
        start = 0
        while (end := pending.find(b"\n", start)) != -1:
            delivered += _deliver(bytes(pending[start:end]), sink, channel, encoding)
            start = end + 1
        del pending[:start]

    if pending:
        delivered += _deliver(bytes(pending), sink, channel, encoding)

    logger.debug({"event": "stream_closed", "channel": channel, "lines": delivered})
    return delivered
