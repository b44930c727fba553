from __future__ import annotations

DEFAULT_ALGORITHM = "sha256"
SHA256_LEN = 32

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_MS = 1000

# Covers the largest UDP payload, so a reply is never cut short by the kernel.
RECV_BUFSIZE = 65535
STREAM_BUFSIZE = 4096

# Reference responder pads replies out to a fixed size, like the quote service.
DEFAULT_REPLY_SIZE = 512
DEFAULT_QUOTE = b"The best way out is always through. (Robert Frost)"
