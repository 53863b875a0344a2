"""Port interface for service order lookup."""

from abc import ABC, abstractmethod

from fieldops.domain.entities.service_order import ServiceOrder


class ServiceOrderRepository(ABC):
    @abstractmethod
    async def save(self, order: ServiceOrder) -> ServiceOrder:
        ...

    @abstractmethod
    async def get_by_id(self, service_order_id: int) -> ServiceOrder | None:
        ...

    @abstractmethod
    async def get_by_external_ref(self, external_ref: str) -> ServiceOrder | None:
        ...
