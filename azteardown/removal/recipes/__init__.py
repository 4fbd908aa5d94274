"""Per-type removal recipes.

Every concrete RemovalRecipe subclass defined in a module of this package is
discovered by the RecipeRegistry.
"""
