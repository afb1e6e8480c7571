import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict

import requests

from txc_graph.config.config_main import import_config

logger = logging.getLogger(__name__)

# Key holding the text of an element that also has attributes or children
TEXT_KEY = "_"


def _local_name(tag: str) -> str:
    """Strip the XML namespace from a tag or attribute name."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def element_to_record(element: ET.Element) -> Any:
    """
    Convert an element to its nested-record form.

    Attributes are merged into the record alongside child elements, a child
    tag seen once is stored as a single value and a repeated tag as a list.
    Leaf elements without attributes collapse to their text.
    """
    record: Dict[str, Any] = {}

    for name, value in element.attrib.items():
        record[_local_name(name)] = value

    for child in element:
        key = _local_name(child.tag)
        value = element_to_record(child)
        if key in record:
            existing = record[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                record[key] = [existing, value]
        else:
            record[key] = value

    text = (element.text or "").strip()
    if not record:
        return text
    if text:
        record[TEXT_KEY] = text
    return record


def parse_document(xml_data) -> Dict[str, Any]:
    """Parse an XML document into the nested record of its root element."""
    root = ET.fromstring(xml_data)
    record = element_to_record(root)
    return record if isinstance(record, dict) else {}


class TxcSource:
    """Loads a TransXChange document from a local path or an HTTP(S) URL."""

    def __init__(self, location: str, timeout: int = None):
        self.location = location
        self.timeout = timeout if timeout is not None else import_config.request_timeout

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def read(self) -> bytes:
        if self.is_remote:
            logger.info(f"Downloading document from {self.location}")
            response = requests.get(self.location, timeout=self.timeout)
            response.raise_for_status()
            return response.content

        path = Path(self.location)
        logger.info(f"Reading document from {path}")
        return path.read_bytes()

    def load(self) -> Dict[str, Any]:
        xml_data = self.read()
        logger.info(f"Parsing {len(xml_data)} bytes of XML")
        return parse_document(xml_data)
