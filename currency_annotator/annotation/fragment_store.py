"""
Original text of every currently annotated fragment
"""

from typing import Dict, Hashable, Iterator, Optional


class FragmentStore:
    """Maps fragment identity to its pre-annotation text.

    Identity is the opaque key the host supplies, never the text. The text
    annotator is the only writer.
    """

    def __init__(self):
        self._originals: Dict[Hashable, str] = {}

    def __contains__(self, fragment_id: Hashable) -> bool:
        return fragment_id in self._originals

    def __len__(self) -> int:
        return len(self._originals)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._originals))

    def get(self, fragment_id: Hashable) -> Optional[str]:
        return self._originals.get(fragment_id)

    def record(self, fragment_id: Hashable, original_text: str):
        if fragment_id in self._originals:
            raise KeyError(f"Fragment {fragment_id!r} is already annotated")
        self._originals[fragment_id] = original_text

    def pop(self, fragment_id: Hashable) -> Optional[str]:
        return self._originals.pop(fragment_id, None)

    def drain(self) -> Dict[Hashable, str]:
        """Remove and return every record"""
        originals, self._originals = self._originals, {}
        return originals
