"""
HTTP access to the remote collection source.

Any response, whatever its status code, comes back as a FetchResult; judging
the status is the controller's job. A request that cannot be completed
raises TransportError; a body larger than max_response_size raises ParseError.
"""

import time
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx
import structlog

from .errors import ParseError, TransportError
from .state import FailureKind

logger = structlog.get_logger(__name__)


class FetchResult:
    def __init__(
        self,
        url: str,
        status_code: int,
        content: bytes = b'',
        headers: Dict[str, str] = None,
        final_url: str = None,
        fetch_time: float = 0.0,
        content_type: str = None,
        encoding: str = None
    ):
        """Initialize a FetchResult with HTTP response data and metadata."""
        self.url = url
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.final_url = final_url or url
        self.fetch_time = fetch_time
        self.content_type = content_type
        self.encoding = encoding
        self.timestamp = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        """Check if the response carries a 2xx status code."""
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Decode the response content using the detected encoding.

        Raises UnicodeDecodeError (or LookupError for an unknown charset) so
        that a garbled body is reported as a parse failure.
        """
        if not self.content:
            return ""
        return self.content.decode(self.encoding or 'utf-8')

    @property
    def size(self) -> int:
        return len(self.content)


class HTTPFetcher:
    def __init__(
        self,
        user_agent: str = 'ResourceLoader/1.0',
        timeout: float = 30.0,
        max_redirects: int = 5,
        max_response_size: int = 10 * 1024 * 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the fetcher and its pooled async client.

        Args:
            max_response_size: Largest body accepted, in bytes. Bigger bodies
                               raise ParseError without being read in full.
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.max_response_size = max_response_size

        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate',
        }
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            max_redirects=self.max_redirects,
            headers=headers,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=transport
        )

    @classmethod
    def from_config(cls, fetcher_config: Dict, transport: Optional[httpx.AsyncBaseTransport] = None) -> 'HTTPFetcher':
        """Build a fetcher from the `fetcher` config section."""
        return cls(
            user_agent=fetcher_config.get('user_agent', 'ResourceLoader/1.0'),
            timeout=float(fetcher_config.get('timeout', 30.0)),
            max_redirects=int(fetcher_config.get('max_redirects', 5)),
            max_response_size=int(fetcher_config.get('max_response_size', 10 * 1024 * 1024)),
            transport=transport
        )

    async def fetch(self, url: str, headers: Dict[str, str] = None) -> FetchResult:
        """GET `url` and return its FetchResult.

        Raises TransportError when the request cannot complete and ParseError
        when the body exceeds max_response_size.
        """
        start_time = time.time()

        try:
            async with self._client.stream('GET', url, headers=headers or {}) as response:
                content = await self._read_body(url, response)
        except httpx.TimeoutException as e:
            error = f"Timeout after {self.timeout}s: {str(e)}"
            logger.warning("fetch_timeout", url=url, error=error)
            raise TransportError(error, kind=FailureKind.TIMEOUT) from e
        except httpx.ConnectError as e:
            error = f"Connection error: {str(e)}"
            logger.warning("fetch_connect_error", url=url, error=error)
            raise TransportError(error) from e
        except httpx.HTTPError as e:
            error = f"Request failed: {str(e)}"
            logger.warning("fetch_failed", url=url, error=error)
            raise TransportError(error) from e

        fetch_time = time.time() - start_time
        content_type = response.headers.get('content-type', '').lower()

        logger.debug("fetch_completed",
                     url=url,
                     status_code=response.status_code,
                     fetch_time=round(fetch_time, 3))

        return FetchResult(
            url=url,
            status_code=response.status_code,
            content=content,
            headers=dict(response.headers),
            final_url=str(response.url),
            fetch_time=fetch_time,
            content_type=content_type,
            encoding=self._extract_encoding(content_type)
        )

    async def _read_body(self, url: str, response: httpx.Response) -> bytes:
        """Read the body, stopping once it grows past max_response_size."""
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_response_size:
            raise self._too_large(url, int(content_length))

        content = b''
        async for chunk in response.aiter_bytes(chunk_size=8192):
            content += chunk
            if len(content) > self.max_response_size:
                raise self._too_large(url, len(content))
        return content

    def _too_large(self, url: str, size: int) -> ParseError:
        error = f"Content too large: {size} bytes > {self.max_response_size} bytes"
        logger.warning("fetch_too_large", url=url, error=error)
        return ParseError(error)

    def _extract_encoding(self, content_type: str) -> str:
        """Extract the charset from a Content-Type header, defaulting to utf-8."""
        if 'charset=' in content_type:
            charset = content_type.split('charset=')[1].split(';')[0].strip(' \'"')
            if charset:
                return charset
        return 'utf-8'

    async def aclose(self):
        await self._client.aclose()
