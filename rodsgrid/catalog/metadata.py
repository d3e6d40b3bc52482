"""
Catalog Metadata

Attribute/value/unit triples attached to catalog objects and the per-handle
collection that caches them.
"""

from typing import Iterator, List, NamedTuple, Optional

from ..core.constants import ErrorMessages
from ..core.exceptions import NotFound


class Metadatum(NamedTuple):
    """A single attribute/value/unit triple"""
    attribute: str
    value: str
    units: str = ""


class MetadataCollection:
    """AVUs attached to one catalog object, in the order the gateway reported them"""

    def __init__(self, owner_path: str, metas: Optional[List[Metadatum]] = None):
        self.owner_path = owner_path
        self._metas: List[Metadatum] = list(metas or [])

    def get(self, attribute: str) -> Metadatum:
        """
        Get the first AVU with the given attribute name

        Raises:
            NotFound: If no AVU carries that attribute
        """
        for meta in self._metas:
            if meta.attribute == attribute:
                return meta
        raise NotFound(str(ErrorMessages.CatalogError.ATTRIBUTE_NOT_FOUND).format(
            name=attribute, path=self.owner_path), path=self.owner_path, operation="attribute")

    def get_all(self, attribute: str) -> List[Metadatum]:
        """Get every AVU with the given attribute name"""
        return [meta for meta in self._metas if meta.attribute == attribute]

    def attributes(self) -> List[str]:
        """Distinct attribute names in first-seen order"""
        seen = []
        for meta in self._metas:
            if meta.attribute not in seen:
                seen.append(meta.attribute)
        return seen

    def add(self, metadatum: Metadatum) -> None:
        if metadatum not in self._metas:
            self._metas.append(metadatum)

    def remove(self, metadatum: Metadatum) -> None:
        if metadatum in self._metas:
            self._metas.remove(metadatum)

    def __contains__(self, attribute: str) -> bool:
        return any(meta.attribute == attribute for meta in self._metas)

    def __iter__(self) -> Iterator[Metadatum]:
        return iter(list(self._metas))

    def __len__(self) -> int:
        return len(self._metas)

    def __repr__(self) -> str:
        return f"MetadataCollection({self.owner_path!r}, {self._metas!r})"
