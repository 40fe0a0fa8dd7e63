"""
Catalog Loader Module

Loads the fixed list of items (repository URLs) that respondents compare.
The catalog is read-only once loaded and shared by every round.
"""

import logging
from pathlib import Path
from typing import Iterator, Optional, Sequence, Tuple, Union

import yaml

from pairwise_elicit.errors import InsufficientItems

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "config" / "catalog.yaml"


class Catalog(Sequence[str]):
    """
    Immutable, duplicate-free sequence of items.
    
    Attributes:
        items: The items, in catalog order
        source: File the catalog was loaded from, if any
    """
    
    def __init__(self, items: Sequence[str], source: Optional[Path] = None):
        cleaned = tuple(str(item).strip() for item in items)
        if any(not item for item in cleaned):
            raise ValueError("Catalog items must be non-empty strings")
        
        seen = set()
        duplicates = set()
        for item in cleaned:
            if item in seen:
                duplicates.add(item)
            seen.add(item)
        if duplicates:
            raise ValueError(f"Catalog contains duplicate items: {sorted(duplicates)}")
        
        if len(cleaned) < 2:
            raise InsufficientItems(
                f"Catalog needs at least 2 items, found {len(cleaned)}"
            )
        
        self.items: Tuple[str, ...] = cleaned
        self.source = source
    
    def __len__(self) -> int:
        return len(self.items)
    
    def __getitem__(self, index):
        return self.items[index]
    
    def __iter__(self) -> Iterator[str]:
        return iter(self.items)


def load_catalog(path: Union[str, Path, None] = None) -> Catalog:
    """
    Load a catalog from a YAML file with an `items:` list.
    
    Args:
        path: YAML file to read. Defaults to the bundled config/catalog.yaml
        
    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file has no `items` list or contains duplicates
    """
    path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ValueError(f"Catalog file {path} must define an 'items' list")
    
    catalog = Catalog(items, source=path)
    logger.info("Loaded %d catalog items from %s", len(catalog), path)
    return catalog
