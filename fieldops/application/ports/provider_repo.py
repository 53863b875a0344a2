"""Port interface for the provider / work team pool."""

from abc import ABC, abstractmethod

from fieldops.domain.entities.provider import Provider, WorkTeam


class ProviderRepository(ABC):
    @abstractmethod
    async def save(self, provider: Provider) -> Provider:
        ...

    @abstractmethod
    async def get_candidates(self, country_code: str) -> list[Provider]:
        """All providers registered in the country, including inactive ones."""
        ...

    @abstractmethod
    async def get_by_ids(self, provider_ids: list[int]) -> list[Provider]:
        ...

    @abstractmethod
    async def get_by_name(self, name: str) -> Provider | None:
        ...

    @abstractmethod
    async def save_work_team(self, team: WorkTeam) -> WorkTeam:
        ...

    @abstractmethod
    async def get_work_team(self, work_team_id: int) -> WorkTeam | None:
        ...
