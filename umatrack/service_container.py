from typing import Dict, List, Type, TypeVar
from umatrack.services.base_service import IService
from umatrack.logger import logger

T = TypeVar('T', bound=IService)

class ServiceContainer:
    def __init__(self):
        # Insertion order is the initialization order
        self._services: Dict[Type[IService], IService] = {}

    def register(self, interface: Type[T], implementation: T) -> None:
        """Register a service implementation for an interface."""
        self._services[interface] = implementation

    def resolve(self, interface: Type[T]) -> T:
        """Resolve a service by its interface."""
        if interface not in self._services:
            raise KeyError(f"Service {interface.__name__} not registered")
        return self._services[interface]

    def initialize_all(self) -> List[str]:
        """Initialize all registered services. Returns the names of those that failed."""
        failed = []
        for interface, service in self._services.items():
            if not service.initialize():
                logger.error(f"ServiceContainer: {interface.__name__} failed to initialize")
                failed.append(interface.__name__)
        return failed

    def shutdown_all(self) -> None:
        """Shutdown all registered services, in reverse order."""
        for service in reversed(list(self._services.values())):
            try:
                service.shutdown()
            except Exception as e:
                logger.error(f"ServiceContainer: Error shutting down {type(service).__name__}: {e}")
