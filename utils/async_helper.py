import asyncio
import logging

import httpx

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


async def fetch_pages_async(urls_to_fetch: list, timeout: int = 15):
    """
    Fetches several pages concurrently. Each result is (url, html) with html
    set to None when the request failed or returned an error status.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, headers=HEADERS) as client:

        async def fetch(url):
            try:
                response = await client.get(url)
                response.raise_for_status()
                return url, response.text
            except httpx.HTTPError as e:
                logging.warning(f"Could not fetch {url}: {e}")
                return url, None

        return await asyncio.gather(*(fetch(url) for url in urls_to_fetch))
