"""Static per-mutation-type reconciliation configuration."""

from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from .errors import RegistryError, UnknownMutationTypeError
from .types import MutationType, Strategy

__all__ = [
    "MutationConfig",
    "MutationRegistry",
    "DEFAULT_REGISTRY",
]


@dataclass(frozen=True)
class MutationConfig:
    """How items of one mutation type reconcile with the queue."""

    strategy: Strategy
    opposing_type: Optional[MutationType] = None


class MutationRegistry:
    """Exhaustive map from mutation type to MutationConfig.

    Validated on construction so a missing or inconsistent entry fails
    immediately instead of silently defaulting at enqueue time.
    """

    def __init__(self, configs: Mapping[MutationType, MutationConfig]):
        """Initialize and validate the registry.

        Args:
            configs: Config for every MutationType member

        Raises:
            RegistryError: If a type is missing, an opposing type is not
                registered, or opposition is not symmetric
        """
        self._configs = dict(configs)
        self._validate()

    def _validate(self) -> None:
        missing = [t.value for t in MutationType if t not in self._configs]
        if missing:
            raise RegistryError(f"Missing mutation config for: {', '.join(missing)}")

        for mutation_type, config in self._configs.items():
            if not isinstance(mutation_type, MutationType):
                raise RegistryError(f"Not a mutation type: {mutation_type!r}")
            opposing = config.opposing_type
            if opposing is None:
                continue
            if opposing == mutation_type:
                raise RegistryError(f"{mutation_type.value} cannot oppose itself")
            if opposing not in self._configs:
                raise RegistryError(
                    f"{mutation_type.value} opposes unregistered type {opposing!r}"
                )
            if self._configs[opposing].opposing_type != mutation_type:
                raise RegistryError(
                    f"Opposition between {mutation_type.value} and "
                    f"{opposing.value} is not symmetric"
                )

    def get(self, mutation_type) -> MutationConfig:
        """Look up the config for a mutation type.

        Args:
            mutation_type: A MutationType or its wire tag

        Raises:
            UnknownMutationTypeError: If the type is not registered
        """
        try:
            return self._configs[MutationType(mutation_type)]
        except (KeyError, ValueError):
            raise UnknownMutationTypeError(mutation_type) from None

    def __contains__(self, mutation_type) -> bool:
        try:
            self.get(mutation_type)
        except UnknownMutationTypeError:
            return False
        return True

    def __iter__(self) -> Iterator[MutationType]:
        return iter(self._configs)

    def __len__(self) -> int:
        return len(self._configs)


DEFAULT_REGISTRY = MutationRegistry(
    {
        # Applying and withdrawing cancel each other out while both are queued.
        MutationType.APPLY_FOR_EXCHANGE: MutationConfig(
            strategy=Strategy.DEDUPLICATE,
            opposing_type=MutationType.WITHDRAW_FROM_EXCHANGE,
        ),
        MutationType.WITHDRAW_FROM_EXCHANGE: MutationConfig(
            strategy=Strategy.DEDUPLICATE,
            opposing_type=MutationType.APPLY_FOR_EXCHANGE,
        ),
        MutationType.ADD_TO_EXCHANGE: MutationConfig(strategy=Strategy.REPLACE),
        MutationType.UPDATE_COMPENSATION: MutationConfig(strategy=Strategy.REPLACE),
    }
)
