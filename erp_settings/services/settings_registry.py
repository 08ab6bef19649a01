"""
Settings Registry
Maps a module identifier to the factory building its settings handler
"""
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from erp_settings.services.option_store import OptionStore
from erp_settings.services.settings_handlers import BUILTIN_HANDLERS, SettingsHandler
from erp_settings.services.user_service import MANAGE_OPTIONS, has_capability

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[Mapping[str, Any], OptionStore, str], SettingsHandler]


class UnregisteredModuleError(LookupError):
    """Raised when no settings handler is registered for a module"""

    def __init__(self, module: str):
        self.module = module
        super().__init__(f"Unregistered settings module: {module}")


class SettingsRegistry:
    """Registration table of module settings handlers"""

    def __init__(self, option_store: OptionStore):
        self.option_store = option_store
        self._factories: Dict[str, HandlerFactory] = {}
        self._manager_capabilities: Dict[str, Optional[str]] = {}

    def register(self, module: str, factory: HandlerFactory, manager_capability: Optional[str] = None):
        """
        Register a settings handler for a module

        Args:
            module: Module identifier sent by the admin UI, e.g. 'erp-hr'
            factory: Called with (data, option_store, sub_section), returns a handler
            manager_capability: Capability that may save this module's
                settings without manage_options
        """
        if module in self._factories:
            logger.warning(f"[SETTINGS] Replacing settings handler for module {module}")
        self._factories[module] = factory
        self._manager_capabilities[module] = manager_capability

    def register_builtin_handlers(self):
        for handler_cls, manager_capability in BUILTIN_HANDLERS:
            self.register(handler_cls.module_id, handler_cls, manager_capability)

    def modules(self) -> List[str]:
        return list(self._factories)

    def is_registered(self, module: str) -> bool:
        return module in self._factories

    def is_authorized(self, user: Optional[dict], module: str) -> bool:
        """manage_options, or the module's manager capability when it has one"""
        if has_capability(user, MANAGE_OPTIONS):
            return True
        manager_capability = self._manager_capabilities.get(module)
        return bool(manager_capability) and has_capability(user, manager_capability)

    def resolve(self, module: str, data: Mapping[str, Any], sub_section: str = '') -> SettingsHandler:
        """
        Build the settings handler for a module

        Raises:
            UnregisteredModuleError: If no handler is registered for the module
        """
        factory = self._factories.get(module)
        if factory is None:
            raise UnregisteredModuleError(module)
        return factory(data, self.option_store, sub_section)
