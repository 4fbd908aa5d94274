"""Registry mapping resource types to removal recipes."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from typing import Dict, Optional

from .recipes.base import RemovalRecipe
from .recipes.default import DefaultRecipe

logger = logging.getLogger(__name__)


class RecipeRegistry:
    """Maps resource types to removal recipes.

    The registry automatically discovers every concrete recipe in the recipes
    package. Types are matched exactly but case-insensitively (ARM types are
    case-insensitive); unknown types fall back to the default recipe.
    """

    def __init__(self, discover: bool = True) -> None:
        """Initialize the registry.

        Args:
            discover: Load every recipe from the recipes package
        """
        self._recipes: Dict[str, RemovalRecipe] = {}
        self._type_names: Dict[str, str] = {}
        self.default = DefaultRecipe()
        if discover:
            self._load_recipes()

    def _load_recipes(self) -> None:
        """Dynamically load all recipe classes from the recipes package.

        Import errors propagate: a missing recipe would silently turn its
        types into plain deletes.
        """
        from . import recipes

        for _, modname, _ in pkgutil.iter_modules(recipes.__path__):
            if modname in ("base", "default"):
                continue

            module = importlib.import_module(f".recipes.{modname}", package=__package__)
            for _, obj in inspect.getmembers(module, inspect.isclass):
                # Only classes defined in this module; base classes imported from elsewhere are skipped
                if obj.__module__ != module.__name__:
                    continue
                if issubclass(obj, RemovalRecipe) and not inspect.isabstract(obj):
                    self.register(obj())

        logger.debug(f"Loaded recipes for {len(self._recipes)} resource types")

    def register(self, recipe: RemovalRecipe) -> None:
        """Register a recipe for every type it declares, replacing earlier registrations.

        Args:
            recipe: Recipe instance
        """
        for resource_type in recipe.resource_types:
            self._recipes[resource_type.lower()] = recipe
            self._type_names[resource_type.lower()] = resource_type

    def recipe_for(self, resource_type: Optional[str]) -> RemovalRecipe:
        """Select the recipe for a resource type.

        Args:
            resource_type: ARM resource type (e.g. "Microsoft.KeyVault/vaults")

        Returns:
            Registered recipe, or the default recipe for unknown types
        """
        if not resource_type:
            return self.default
        return self._recipes.get(resource_type.lower(), self.default)

    def supported_types(self) -> Dict[str, str]:
        """Registered types mapped to their recipe names, sorted by type."""
        return {self._type_names[key]: self._recipes[key].name for key in sorted(self._recipes)}

    def __len__(self) -> int:
        return len(self._recipes)

