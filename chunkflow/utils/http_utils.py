import logging
from pathlib import Path
from typing import Optional

import aiofiles
import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
from tqdm.asyncio import tqdm as tqdm_asyncio

from chunkflow.configs import settings
from chunkflow.exceptions import DownloadError
from chunkflow.utils.workspace import remove_quietly

logger = logging.getLogger(__name__)


def create_httpx_client(follow_redirects: bool = True, **kwargs) -> httpx.AsyncClient:
    """
    Create an HTTPX AsyncClient configured from the transport settings.

    Args:
        follow_redirects (bool): Whether to follow 3xx redirects automatically.
        **kwargs: Additional AsyncClient keyword arguments.

    Returns:
        httpx.AsyncClient: Configured client with the download timeout applied.
    """
    mounts = settings.transport_config.get_mounts()
    kwargs.setdefault("timeout", settings.transport_config.timeout)
    kwargs.setdefault("headers", {"user-agent": settings.user_agent})
    return httpx.AsyncClient(mounts=mounts, follow_redirects=follow_redirects, **kwargs)


def is_transient_download_error(exception: BaseException) -> bool:
    """Timeouts, transport failures and 5xx answers are worth another attempt."""
    if not isinstance(exception, DownloadError):
        return False
    return exception.upstream_status >= 500 or exception.upstream_status == 408


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    retry=retry_if_exception(is_transient_download_error),
    reraise=True,
)
async def stream_to_file(client: httpx.AsyncClient, url: str, destination: Path) -> int:
    """
    Stream a URL into a local file with retry logic.

    Args:
        client (httpx.AsyncClient): HTTP client to use for the request.
        url (str): Source URL.
        destination (Path): File to (over)write.

    Returns:
        int: Number of bytes written.

    Raises:
        DownloadError: If the request fails, times out or answers with a non-2xx status.
    """
    bytes_written = 0
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            async with aiofiles.open(destination, "wb") as f:
                if settings.enable_download_progress:
                    total_size = int(response.headers.get("content-length", 0)) or None
                    with tqdm_asyncio(
                        total=total_size,
                        unit="B",
                        unit_scale=True,
                        unit_divisor=1024,
                        desc=f"Downloading {destination.name}",
                        ncols=100,
                        mininterval=1,
                    ) as progress_bar:
                        async for chunk in response.aiter_bytes():
                            await f.write(chunk)
                            bytes_written += len(chunk)
                            progress_bar.update(len(chunk))
                else:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
                        bytes_written += len(chunk)
    except httpx.TimeoutException:
        logger.warning(f"Timeout while downloading {url}")
        raise DownloadError(504, f"Timeout while downloading {url}")
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error {e.response.status_code} while downloading {url}")
        raise DownloadError(e.response.status_code, f"HTTP error {e.response.status_code} while downloading {url}")
    except httpx.RequestError as e:
        logger.error(f"Error downloading {url}: {e}")
        raise DownloadError(502, f"Error downloading {url}: {e}")
    return bytes_written


async def download_file(url: str, destination: Path, client: Optional[httpx.AsyncClient] = None) -> int:
    """
    Download a remote file to ``destination``.

    A partially written file is removed when the download fails.

    Args:
        url (str): File URL.
        destination (Path): Local path to write.
        client (httpx.AsyncClient, optional): Client to reuse; a new one is created otherwise.

    Returns:
        int: Number of bytes written.
    """
    try:
        if client is not None:
            size = await stream_to_file(client, url, destination)
        else:
            async with create_httpx_client() as new_client:
                size = await stream_to_file(new_client, url, destination)
    except Exception:
        await remove_quietly(destination)
        raise

    logger.info(f"Downloaded {url} to {destination} ({size} bytes)")
    return size
