"""
A small dependency injection container with singleton, scoped and transient lifetimes.

Services are registered on a ServiceCollection, which builds a root ServiceProvider.
Per request state is resolved from a ServiceScope created from the root provider:

    with provider.create_scope() as scope:
        users = scope.service_provider.get_required_service(UserService)

Singletons live as long as the root provider, scoped services as long as the scope they
were resolved from, and transient services are created on every resolution. Instances with
a ``close()`` method are closed when their owner is closed, except transients resolved from
the root provider, which the caller must close.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, NamedTuple, TypeVar

from src.service.exceptions import (
    InvalidScopeError,
    ServiceNotRegisteredError,
    ServiceProviderClosedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Factory = Callable[["ServiceProvider"], Any]


class ServiceLifetime(Enum):
    """How long a resolved service instance is reused."""

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class ServiceDescriptor(NamedTuple):
    """A service registration."""

    service_type: type
    """ The type the service is resolved by. """
    lifetime: ServiceLifetime
    """ The lifetime of instances. """
    factory: Factory | None = None
    """ Builds an instance from the resolving provider. None if an instance was provided. """
    instance: Any = None
    """ A pre-built singleton instance. """


def _close_instances(instances: list[Any]):
    # close in reverse creation order so dependents go before their dependencies
    for instance in reversed(instances):
        close = getattr(instance, "close", None)
        if callable(close):
            try:
                close()
            except Exception:
                logger.exception("Error closing service %s", type(instance).__name__)


class ServiceCollection:
    """
    The set of service registrations used to build a ServiceProvider.

    Registering a type a second time replaces the earlier registration.
    """

    def __init__(self):
        self._descriptors: dict[type, ServiceDescriptor] = {}

    def add_singleton(
        self,
        service_type: type[T],
        factory: Callable[["ServiceProvider"], T] | None = None,
        instance: T | None = None,
    ) -> "ServiceCollection":
        if (factory is None) == (instance is None):
            raise ValueError("Exactly one of factory or instance is required")
        self._descriptors[service_type] = ServiceDescriptor(
            service_type, ServiceLifetime.SINGLETON, factory, instance
        )
        return self

    def add_scoped(
        self, service_type: type[T], factory: Callable[["ServiceProvider"], T]
    ) -> "ServiceCollection":
        self._descriptors[service_type] = ServiceDescriptor(
            service_type, ServiceLifetime.SCOPED, factory
        )
        return self

    def add_transient(
        self, service_type: type[T], factory: Callable[["ServiceProvider"], T]
    ) -> "ServiceCollection":
        self._descriptors[service_type] = ServiceDescriptor(
            service_type, ServiceLifetime.TRANSIENT, factory
        )
        return self

    def __contains__(self, service_type: type) -> bool:
        return service_type in self._descriptors

    def build_provider(self) -> "ServiceProvider":
        """Build the root provider. Later changes to the collection do not affect it."""
        return ServiceProvider(dict(self._descriptors))


class ServiceProvider:
    """
    The root service provider. Resolves singleton and transient services.
    """

    def __init__(self, descriptors: dict[type, ServiceDescriptor]):
        self._descriptors = descriptors
        self._singletons: dict[type, Any] = {}
        self._created: list[Any] = []
        self._lock = threading.RLock()
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise ServiceProviderClosedError("The service provider has been closed")

    def _track(self, instance: Any):
        # only instances that need closing are remembered
        if callable(getattr(instance, "close", None)):
            self._created.append(instance)

    def _descriptor(self, service_type: type) -> ServiceDescriptor | None:
        self._check_open()
        return self._descriptors.get(service_type)

    def _get_singleton(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.factory is None:
            return descriptor.instance
        with self._lock:
            if descriptor.service_type not in self._singletons:
                instance = descriptor.factory(self)
                self._singletons[descriptor.service_type] = instance
                self._track(instance)
            return self._singletons[descriptor.service_type]

    def _resolve(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.lifetime is ServiceLifetime.SINGLETON:
            return self._get_singleton(descriptor)
        if descriptor.lifetime is ServiceLifetime.SCOPED:
            raise InvalidScopeError(
                f"Scoped service {descriptor.service_type.__name__} "
                + "cannot be resolved from the root provider"
            )
        # transients resolved from the root belong to the caller, which closes them
        return descriptor.factory(self)

    def get_service(self, service_type: type[T]) -> T | None:
        """
        Get an instance of a service, or None if the service is not registered.
        """
        descriptor = self._descriptor(service_type)
        if descriptor is None:
            return None
        return self._resolve(descriptor)

    def get_required_service(self, service_type: type[T]) -> T:
        """
        Get an instance of a service, raising ServiceNotRegisteredError if it is not registered.
        """
        descriptor = self._descriptor(service_type)
        if descriptor is None:
            raise ServiceNotRegisteredError(
                f"No service registered for type {service_type.__name__}"
            )
        return self._resolve(descriptor)

    def create_scope(self) -> "ServiceScope":
        self._check_open()
        return ServiceScope(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Close the provider and any singletons it created."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            created, self._created = self._created, []
            self._singletons.clear()
        _close_instances(created)


class _ScopedServiceProvider(ServiceProvider):
    """The provider handed out by a ServiceScope."""

    def __init__(self, root: ServiceProvider):
        super().__init__(root._descriptors)
        self._root = root

    def _check_open(self):
        super()._check_open()
        self._root._check_open()

    def _resolve(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.lifetime is ServiceLifetime.SINGLETON:
            return self._root._get_singleton(descriptor)
        if descriptor.lifetime is ServiceLifetime.SCOPED:
            with self._lock:
                if descriptor.service_type not in self._singletons:
                    instance = descriptor.factory(self)
                    self._singletons[descriptor.service_type] = instance
                    self._track(instance)
                return self._singletons[descriptor.service_type]
        instance = descriptor.factory(self)
        with self._lock:
            self._track(instance)
        return instance

    def create_scope(self) -> "ServiceScope":
        return self._root.create_scope()


class ServiceScope:
    """
    A bounded lifetime context for resolving scoped services. Use as a context manager.
    """

    def __init__(self, root: ServiceProvider):
        self._provider = _ScopedServiceProvider(root)

    @property
    def service_provider(self) -> ServiceProvider:
        return self._provider

    def close(self):
        """Close the scoped and transient services created by this scope."""
        self._provider.close()

    def __enter__(self) -> "ServiceScope":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
