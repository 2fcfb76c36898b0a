"""Tests for recipe lookups."""

from decimal import Decimal

from app.services.recipe_resolver import RecipeRequirement, RecipeResolver


class TestRecipeResolver:
    def test_recipe_backed_item(self, db_session, bread, flour):
        requirements = RecipeResolver(db_session).resolve(bread.id)
        assert requirements == [RecipeRequirement(flour.id, Decimal("100"))]

    def test_multi_ingredient_recipe_ordered_by_ingredient(self, db_session, croissant, flour, butter):
        requirements = RecipeResolver(db_session).resolve(croissant.id)
        assert [r.ingredient_id for r in requirements] == sorted([flour.id, butter.id])
        amounts = {r.ingredient_id: r.quantity_required for r in requirements}
        assert amounts[flour.id] == Decimal("50")
        assert amounts[butter.id] == Decimal("20")

    def test_simple_item_has_no_recipe(self, db_session, cola):
        assert RecipeResolver(db_session).resolve(cola.id) is None

    def test_resolve_many(self, db_session, bread, croissant, cola):
        resolved = RecipeResolver(db_session).resolve_many([bread.id, croissant.id, cola.id])
        assert set(resolved) == {bread.id, croissant.id, cola.id}
        assert len(resolved[bread.id]) == 1
        assert len(resolved[croissant.id]) == 2
        assert resolved[cola.id] is None

    def test_resolve_many_empty(self, db_session):
        assert RecipeResolver(db_session).resolve_many([]) == {}
