"""Region grouping entity."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class RegionGrouping:
    """Immutable many-to-one mapping from state name to analysis region."""

    mapping: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        normalised = {}
        for state, region in self.mapping.items():
            key = " ".join(str(state).split()).upper()
            if key in normalised and normalised[key] != region:
                raise ValueError(f"State {key!r} mapped to more than one region")
            normalised[key] = region
        object.__setattr__(self, "mapping", MappingProxyType(normalised))

    @classmethod
    def from_dict(cls, definition: Dict[str, str]) -> "RegionGrouping":
        """Create RegionGrouping from a settings dictionary."""
        return cls(mapping=dict(definition))

    def region_for(self, state: str) -> Optional[str]:
        """Region label for a state, or None when the state is not grouped."""
        return self.mapping.get(" ".join(str(state).split()).upper())

    @property
    def states(self) -> Tuple[str, ...]:
        return tuple(self.mapping.keys())

    @property
    def regions(self) -> Tuple[str, ...]:
        return tuple(sorted(set(self.mapping.values())))

    def __contains__(self, state: object) -> bool:
        return isinstance(state, str) and self.region_for(state) is not None

    def __len__(self) -> int:
        return len(self.mapping)
