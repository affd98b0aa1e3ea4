"""
Client keyword registries and the per-run keyword ownership index.
"""

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from daily_insights.models import Client, Registry


def normalize_keyword(keyword: Optional[str]) -> str:
    """Trim and lowercase a keyword. None becomes an empty string."""
    if not keyword:
        return ""
    return keyword.strip().lower()


def _split_keyword_text(keyword_text: Optional[str]) -> List[str]:
    """Split a comma-separated keyword string into trimmed tokens."""
    if not keyword_text:
        return []
    return [token.strip() for token in keyword_text.split(",") if token.strip()]


def build_client_registry(client: Client) -> Registry:
    """
    Build the normalized keyword set of one client.

    The registry is the union of the client's own name, every token of its
    comma-separated keyword text and every linked keyword name. Order of first
    discovery is kept so that matching and labels are deterministic.
    """
    candidates = [client.name]
    candidates.extend(_split_keyword_text(client.keyword_text))
    candidates.extend(client.keywords)

    # dict keeps insertion order while collapsing duplicates
    registry = dict.fromkeys(
        normalized for normalized in map(normalize_keyword, candidates) if normalized
    )
    return tuple(registry)


def build_client_registries(clients: Iterable[Client]) -> Dict[int, Registry]:
    """Build registries for all clients, keyed by client id in input order."""
    return {client.id: build_client_registry(client) for client in clients}


class OwnershipIndex(Mapping[str, Tuple[int, ...]]):
    """
    Read-only mapping of normalized keyword to the ids of the clients holding it.

    A keyword held by exactly one client is unique; two or more owners make it
    shared.
    """

    def __init__(self, owners: Mapping[str, Iterable[int]]):
        self._owners = {keyword: tuple(ids) for keyword, ids in owners.items()}

    def __getitem__(self, keyword: str) -> Tuple[int, ...]:
        return self._owners[keyword]

    def __iter__(self) -> Iterator[str]:
        return iter(self._owners)

    def __len__(self) -> int:
        return len(self._owners)

    def owners(self, keyword: str) -> Tuple[int, ...]:
        return self._owners.get(keyword, ())

    def is_unique(self, keyword: str) -> bool:
        return len(self.owners(keyword)) == 1

    def is_shared(self, keyword: str) -> bool:
        return len(self.owners(keyword)) > 1

    def __repr__(self) -> str:
        return f"OwnershipIndex({self._owners!r})"


def build_ownership_index(registries: Mapping[int, Registry]) -> OwnershipIndex:
    """Build the ownership index from every client registry of a run."""
    owners: Dict[str, List[int]] = {}
    for client_id, registry in registries.items():
        for keyword in registry:
            owners.setdefault(keyword, []).append(client_id)
    return OwnershipIndex(owners)


def keyword_vocabulary(registries: Mapping[int, Registry]) -> List[str]:
    """Union of all registry keywords, in first-seen order."""
    vocabulary: Dict[str, None] = {}
    for registry in registries.values():
        vocabulary.update(dict.fromkeys(registry))
    return list(vocabulary)
