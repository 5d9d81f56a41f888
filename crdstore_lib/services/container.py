from typing import Any, Callable, Dict


class ServiceContainer:
    """Registry of the services composed by `create_app`.

    Services are registered by name, either as ready instances or as
    factories. A factory runs on first lookup and its result replaces it.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}

    def register_singleton(self, key: str, instance: Any) -> None:
        self._factories.pop(key, None)
        self._instances[key] = instance

    def register_factory(self, key: str, factory: Callable[[], Any]) -> None:
        self._instances.pop(key, None)
        self._factories[key] = factory

    def get(self, key: str) -> Any:
        if key in self._instances:
            return self._instances[key]
        factory = self._factories.pop(key, None)
        if factory is None:
            raise KeyError(f"No service registered for key '{key}'")
        inst = factory()
        self._instances[key] = inst
        return inst
