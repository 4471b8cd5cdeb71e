"""Tests for relationship declaration and discovery."""

import logging

import pytest

from relcache.errors import InvalidKeyError, NotAnEntityError
from relcache.persistence.memory import Entity, InMemoryEntityStore
from relcache.relations import (
    Cacheable,
    Relation,
    cacheable_relations,
    is_cacheable,
    lower_camel,
    related_instances,
    relation,
    reverse_relation_names,
    table_name,
)
from tests.unit.models import Category, Product, Review, Supplier


class TestCacheableMarker:
    """Tests for the capability marker."""

    def test_is_cacheable(self) -> None:
        assert is_cacheable(Product)
        assert is_cacheable(Product(id=1))
        assert not is_cacheable(Supplier)
        assert not is_cacheable(Supplier(id=1))

    def test_accessors_recorded_in_declaration_order(self) -> None:
        assert Product.__cache_relations__ == ("reviews", "category", "supplier")

    def test_plain_methods_are_not_accessors(self) -> None:
        assert "label" not in Product.__cache_relations__

    def test_inherited_accessors_are_not_recorded(self) -> None:
        """A subclass only carries the accessors of its own body."""

        class FeaturedProduct(Product):
            __tablename__ = "featured"

        assert FeaturedProduct.__cache_relations__ == ()
        assert cacheable_relations(FeaturedProduct(id=1, product_id=1)) == []

    def test_class_without_table_name_is_rejected(self) -> None:
        """Opting in without being an entity type fails at class creation."""
        with pytest.raises(NotAnEntityError):

            class Loose(Cacheable):
                pass

    def test_abstract_class_is_exempt(self) -> None:
        class Base(Cacheable):
            __abstract__ = True

        assert is_cacheable(Base)

    def test_table_name_with_separator_is_rejected(self) -> None:
        with pytest.raises(InvalidKeyError):

            class OrderItem(Cacheable, Entity):
                __tablename__ = "order_items"

    def test_default_table_name(self) -> None:
        class Widget(Cacheable, Entity):
            pass

        assert table_name(Widget) == "widgets"

    def test_entity_first_base_order(self) -> None:
        """Base order does not matter for the default table name."""

        class Gadget(Entity, Cacheable):
            pass

        assert table_name(Gadget) == "gadgets"

    def test_accessor_with_arguments_is_rejected(self) -> None:
        with pytest.raises(TypeError):

            @relation
            def reviews(self, limit):  # noqa: ANN001, ANN202
                return None

    def test_accessor_with_defaults_is_allowed(self) -> None:
        @relation
        def reviews(self, limit=10):  # noqa: ANN001, ANN202
            return None

        assert reviews.__cache_relation__ is True


class TestCacheableRelations:
    """Tests for discovery of cacheable relations."""

    @pytest.fixture(autouse=True)
    def _store(self, store: InMemoryEntityStore) -> None:
        """Accessors need a bound store."""

    def test_discovers_relation_to_cacheable_type(self) -> None:
        assert cacheable_relations(Review(id=1, product_id=1)) == ["product"]

    def test_relation_to_non_cacheable_type_is_excluded(self) -> None:
        product = Product(id=1, category_id=2, supplier_id=3)
        assert cacheable_relations(product) == ["reviews", "category"]

    def test_failing_accessor_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """category_id is never set, so category() raises and is skipped."""
        product = Product(id=1)

        with caplog.at_level(logging.DEBUG, logger="relcache.relations"):
            assert cacheable_relations(product) == ["reviews"]

        assert "products.category" in caplog.text

    def test_none_relation_is_skipped(self) -> None:
        class Tag(Cacheable, Entity):
            @relation
            def parent(self) -> Relation | None:
                return None

        assert cacheable_relations(Tag(id=1)) == []

    def test_non_relation_result_is_skipped(self) -> None:
        class Note(Cacheable, Entity):
            @relation
            def title(self) -> str:
                return "not a relation"

        assert cacheable_relations(Note(id=1)) == []

    def test_discovery_does_not_load_relations(self) -> None:
        """Building a Relation must not call its loader."""
        loads: list[int] = []

        class Shelf(Cacheable, Entity):
            @relation
            def products(self) -> Relation:
                return Relation(Product, lambda: loads.append(1) or [])

        assert cacheable_relations(Shelf(id=1)) == ["products"]
        assert loads == []


class TestRelation:
    """Tests for Relation materialization."""

    def test_many_returns_list(self) -> None:
        rel = Relation(Review, lambda: iter([1, 2]), many=True)
        assert rel.get() == [1, 2]

    def test_many_none_is_empty(self) -> None:
        assert Relation(Review, lambda: None).get() == []

    def test_single_returns_instance(self) -> None:
        product = Product(id=1)
        assert Relation(Product, lambda: product, many=False).get() is product


class TestReverseNames:
    """Tests for reverse accessor name guesses."""

    def test_lower_camel(self) -> None:
        assert lower_camel("ProductReview") == "productReview"
        assert lower_camel("Product") == "product"
        assert lower_camel("") == ""

    def test_reverse_relation_names(self) -> None:
        assert reverse_relation_names(Product(id=1)) == ("products", "product")
        assert reverse_relation_names(Category(id=1)) == ("categories", "category")

    def test_duplicate_guesses_collapse(self) -> None:
        class Sheep(Cacheable, Entity):
            __tablename__ = "sheep"

        assert reverse_relation_names(Sheep(id=1)) == ("sheep",)

    def test_related_instances(self) -> None:
        product = Product(id=1)
        assert related_instances(None) == []
        assert related_instances(product) == [product]
        assert related_instances([product]) == [product]
