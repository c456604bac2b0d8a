"""Record producers for the rotation publisher."""

from pxnote.producers.base import Producer
from pxnote.producers.files import FileProducer
from pxnote.producers.notion import NotionAPIError, NotionClient, NotionProducer
from pxnote.producers.tree import Block, ContentSource, PageTree, TreeCrawler

__all__ = [
    "Block",
    "ContentSource",
    "FileProducer",
    "NotionAPIError",
    "NotionClient",
    "NotionProducer",
    "PageTree",
    "Producer",
    "TreeCrawler",
]
