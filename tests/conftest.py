import pytest
import polyrel.config as cfg
from polyrel.application import Application
from polyrel.session.session import Session
from tests.model import Order, Tag, Item, Category, Invoice


@pytest.fixture(autouse=True)
def reset_config():
    yield
    cfg.unlock()
    cfg.reset()


@pytest.fixture
def app():
    application = Application(in_memory=True)
    with application:
        yield application


@pytest.fixture
def stored(app):
    """An order with two tags, two items, a category and an invoice, committed."""
    category = Category('Books')
    tags = [Tag('t1'), Tag('t2'), Tag('t3')]
    order = Order('A-1')
    items = [Item('pen', 1), Item('ink', 2)]
    invoice = Invoice('INV-1')

    with Session(app) as session:
        session.add(category)
        session.add_all(tags)
        order.assign('category', category)
        order.assign('tags', tags[:2])
        order.assign('items', items)
        order.assign('invoice', invoice)
        assert session.save(order)
        session.commit()

    return {
        'order_id': order._entry_id,
        'category_id': category._entry_id,
        'tag_ids': [tag._entry_id for tag in tags],
        'item_ids': [item._entry_id for item in items],
        'invoice_id': invoice._entry_id,
    }
