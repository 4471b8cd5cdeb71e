"""Tests for the in-memory entity store."""

import pytest

from relcache.persistence.memory import Entity, InMemoryEntityStore
from tests.unit.models import Category, Product, Review


class TestInMemoryEntityStore:
    """Test CRUD and lifecycle events."""

    def test_create_assigns_ids(self, store: InMemoryEntityStore) -> None:
        first = Product.create(name="Lamp")
        second = Product.create(name="Desk")

        assert (first.id, second.id) == (1, 2)

    def test_find_returns_copy(self, store: InMemoryEntityStore) -> None:
        """Handed-out instances are never the stored record."""
        product = Product.create(name="Lamp")

        found = Product.find(product.id)
        assert found == product
        assert found is not product

        found.name = "Changed"
        assert Product.find(product.id).name == "Lamp"

    def test_find_missing(self, store: InMemoryEntityStore) -> None:
        assert Product.find(404) is None

    def test_where(self, store: InMemoryEntityStore) -> None:
        Review.create(product_id=1, body="a")
        Review.create(product_id=2, body="b")

        assert [r.body for r in Review.where(product_id=2)] == ["b"]

    def test_events_on_create_update_delete(self, store: InMemoryEntityStore) -> None:
        events: list[str] = []
        for event in ("created", "updated", "saved", "deleting", "deleted"):
            store.on(Product, event, lambda p, event=event: events.append(event))

        product = Product.create(name="Lamp")
        product.update(name="Desk")
        product.delete()

        assert events == ["created", "saved", "updated", "saved", "deleting", "deleted"]

    def test_handlers_are_scoped_to_type(self, store: InMemoryEntityStore) -> None:
        seen: list[Entity] = []
        store.on(Category, "created", seen.append)

        Product.create(name="Lamp")

        assert seen == []

    def test_handlers_receive_subclass_events(self, store: InMemoryEntityStore) -> None:
        class Bundle(Product):
            __tablename__ = "bundles"

        store.register(Bundle)
        seen: list[Entity] = []
        store.on(Product, "created", seen.append)

        Bundle.create(name="Kit")

        assert len(seen) == 1

    def test_unknown_event(self, store: InMemoryEntityStore) -> None:
        with pytest.raises(ValueError):
            store.on(Product, "archived", print)

    def test_delete_missing_is_noop(self, store: InMemoryEntityStore) -> None:
        events: list[str] = []
        store.on(Product, "deleting", lambda p: events.append("deleting"))

        Product(id=5).delete()

        assert events == []

    def test_unregistered_model(self) -> None:
        class Orphan(Entity):
            pass

        with pytest.raises(RuntimeError):
            Orphan.all()

    def test_default_table_name(self) -> None:
        class Invoice(Entity):
            pass

        assert Invoice.__tablename__ == "invoices"


class TestRelationHelpers:
    """Test has_many / has_one / belongs_to."""

    def test_has_many(self, store: InMemoryEntityStore) -> None:
        product = Product.create(name="Lamp")
        Review.create(product_id=product.id, body="a")

        assert [r.body for r in product.reviews().get()] == ["a"]

    def test_has_one(self, store: InMemoryEntityStore) -> None:
        product = Product.create(name="Lamp")
        Review.create(product_id=product.id, body="a")

        rel = product.has_one(Review, "product_id")
        assert rel.many is False
        assert rel.get().body == "a"

    def test_belongs_to(self, store: InMemoryEntityStore) -> None:
        product = Product.create(name="Lamp")
        review = Review.create(product_id=product.id, body="a")

        assert review.product().get() == product

    def test_belongs_to_with_null_key(self, store: InMemoryEntityStore) -> None:
        assert Review(id=1, product_id=None).product().get() is None

    def test_belongs_to_without_key_raises(self) -> None:
        with pytest.raises(AttributeError):
            Review(id=1).product()
