import logging
import random

from bs4 import BeautifulSoup
from requests import Session, exceptions
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

#different user-agents to mimic various browers and operating systems
USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2.1 Safari/605.1.15'
]


def build_session() -> Session:
    session = Session()
    retries = Retry(total=3, backoff_factor=1, status_forcelist=[429, 500, 502, 503, 504])
    adapter = HTTPAdapter(max_retries=retries)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    session.headers.update({
        'User-Agent': random.choice(USER_AGENTS),
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
    })
    return session


def parse_meta_tags(html: str) -> dict:
    """
    Extracts the tag map of a page: title, named/property meta tags,
    charset, canonical link and the html lang attribute.
    """
    soup = BeautifulSoup(html or "", "lxml")
    tags = {}

    if soup.title and (title := soup.title.get_text().strip()):
        tags["title"] = title

    for meta in soup.find_all("meta"):
        if charset := meta.get("charset"):
            tags["charset"] = charset.strip()
            continue
        name = meta.get("name") or meta.get("property") or meta.get("http-equiv")
        content = meta.get("content")
        if name and content:
            tags[name.strip()] = content

    if canonical := soup.find("link", attrs={"rel": "canonical"}):
        if href := canonical.get("href", "").strip():
            tags["canonical"] = href

    if soup.html and (lang := soup.html.get("lang")):
        tags["html"] = f'lang="{lang}"'

    return tags


def extract_meta_tags(url: str, timeout: int = 15) -> tuple[dict, str] | None:
    """
    Fetches a page and extracts its tag map.

    Args:
        url (str): The page to fetch.
        timeout (int): Request timeout in seconds.

    Returns:
        tuple[dict, str] | None: The tag map and the raw HTML, or None when the page could not be fetched.
    """
    with build_session() as session:
        try:
            response = session.get(url, timeout=timeout)
            response.raise_for_status()
        except exceptions.RequestException as e:
            logging.error(f"Error fetching {url}: {e}")
            return None

    html = response.text
    tags = parse_meta_tags(html)
    logging.info(f"Extracted {len(tags)} tags from {url}")
    return tags, html


if __name__ == "__main__":
    import pprint
    import sys

    test_url = sys.argv[1] if len(sys.argv) > 1 else "https://example.com"
    result = extract_meta_tags(test_url)
    if result:
        pprint.pprint(result[0])
