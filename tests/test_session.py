import pytest
from polyrel.application import Application
from polyrel.session.session import Session, _SessionState
from tests.model import Order, Tag, Item, Invoice, OrderTag


def test_session_requires_initialized_application():
    app = Application(in_memory=True)
    with pytest.raises(ValueError) as e:
        Session(app)
    assert 'must be initialized' in str(e.value)

def test_session_empty_commit(app):
    s = Session(app)
    with s:
        s.commit()

def test_session_empty_rollback(app):
    s = Session(app)
    with s:
        s.rollback()

def test_session_state_after_initialization(app):
    s = Session(app)
    assert s.get_session_state() == _SessionState.INITIALIZED

def test_session_state_after_commit(app):
    s = Session(app)
    with s:
        assert s._state == _SessionState.ACTIVE
        s.commit()
        assert s._state == _SessionState.COMPLETED

def test_session_state_after_rollback(app):
    s = Session(app)
    with s:
        assert s._state == _SessionState.ACTIVE
        s.rollback()
        assert s._state == _SessionState.COMPLETED

def test_session_add(app):
    tag = Tag('t1')

    s = Session(app)
    with s:
        s.add(tag)
        s.commit()

    s = Session(app)
    with s:
        result = s.find_one(Tag, tag._entry_id)
        assert result
        assert result._entry_id == tag._entry_id
        assert result.label == 't1'
        assert result._session is s

def test_session_add_on_completed(app):
    tag = Tag('t1')

    s = Session(app)
    with s:
        s.commit()
        with pytest.raises(RuntimeError) as e:
            s.add(tag)
        assert 'completed Session' in str(e.value)

def test_session_add_outside_of_with(app):
    tag = Tag('t1')
    s = Session(app)
    with pytest.raises(RuntimeError) as e:
        s.add(tag)
    assert 'must first be activated' in str(e.value)

def test_session_add_all(app):
    tags = [Tag('t1'), Tag('t2')]

    s = Session(app)
    with s:
        s.add_all(tags)
        s.commit()

    s = Session(app)
    with s:
        assert sorted(tag.label for tag in s.find_all(Tag)) == ['t1', 't2']

def test_session_add_duplicate_key(app):
    s = Session(app)
    with s:
        s.add(Tag('t1', _entry_id='same'))
        with pytest.raises(ValueError) as e:
            s.add(Tag('t2', _entry_id='same'))
        assert 'Duplicate primary key' in str(e.value)

def test_session_exit_rolls_back(app):
    s = Session(app)
    with s:
        s.add(Tag('t1'))

    s = Session(app)
    with s:
        assert s.find_all(Tag) == []

def test_session_save_updates_changed_fields(app):
    tag = Tag('t1')
    s = Session(app)
    with s:
        assert s.save(tag)
        tag.label = 't2'
        assert tag._to_update_dict() == {'label': 't2'}
        assert s.save(tag)
        assert not tag._is_dirty()
        s.commit()

    s = Session(app)
    with s:
        assert s.find_one(Tag, tag._entry_id).label == 't2'

def test_session_save_invalid_model(app):
    tag = Tag(None)
    s = Session(app)
    with s:
        assert not s.save(tag)
        assert tag.errors == {'label': ['label cannot be blank.']}
        assert tag._is_new

def test_session_find_one_by_tuple(app):
    tag = Tag('t1')
    s = Session(app)
    with s:
        s.add(tag)
        assert s.find_one(Tag, (tag._entry_id,))._entry_id == tag._entry_id
        with pytest.raises(ValueError):
            s.find_one(Tag, (tag._entry_id, 'extra'))

def test_session_find_all_unknown_field(app):
    s = Session(app)
    with s:
        with pytest.raises(ValueError) as e:
            s.find_all(Tag, {'colour': 'red'})
        assert "has no field 'colour'" in str(e.value)

def test_session_delete(app):
    tag = Tag('t1')
    s = Session(app)
    with s:
        s.add(tag)
        assert s.delete(tag)
        assert s.find_one(Tag, tag._entry_id) is None

def test_session_delete_all(app):
    tags = [Tag('t1'), Tag('t2')]
    s = Session(app)
    with s:
        s.add_all(tags)
        s.delete_all(tags)
        assert s.find_all(Tag) == []

def test_session_refresh(app):
    tag = Tag('t1')
    s = Session(app)
    with s:
        s.add(tag)
        tag.label = 'changed'
        assert s.refresh(tag)
        assert tag.label == 't1'
        assert not tag._is_dirty()
        s.delete(tag)
        assert not s.refresh(tag)

def test_session_link_and_unlink_junction(app):
    order = Order('A-1')
    tag = Tag('t1')
    s = Session(app)
    with s:
        s.add_all([order, tag])
        s.link(order, 'tags', tag)
        assert [row.tag_id for row in s.find_all(OrderTag)] == [tag._entry_id]
        assert [t._entry_id for t in order.tags] == [tag._entry_id]

        s.unlink(order, 'tags', tag, delete=True)
        assert s.find_all(OrderTag) == []
        assert order.tags == []

def test_session_link_requires_saved_models(app):
    order = Order('A-1')
    s = Session(app)
    with s:
        with pytest.raises(RuntimeError) as e:
            s.link(order, 'items', Item('pen', 1))
        assert 'has not been saved yet' in str(e.value)

def test_session_link_and_unlink_direct(app):
    order = Order('A-1')
    invoice = Invoice('INV-1')
    s = Session(app)
    with s:
        s.add(order)
        s.link(order, 'invoice', invoice)
        assert not invoice._is_new
        assert invoice.order_id == order._entry_id
        assert order.invoice is invoice

        s.unlink(order, 'invoice', invoice)
        assert invoice.order_id is None
        assert order.invoice is None
        assert s.find_one(Invoice, invoice._entry_id).order_id is None

def test_session_commit_with_open_transaction(app):
    s = Session(app)
    with s:
        s.begin_transaction()
        with pytest.raises(RuntimeError) as e:
            s.commit()
        assert 'transaction is still open' in str(e.value)

def test_session_transaction_commit(app):
    s = Session(app)
    with s:
        transaction = s.begin_transaction()
        s.add(Tag('t1'))
        transaction.commit()
        assert not transaction.is_active
        s.commit()

    s = Session(app)
    with s:
        assert len(s.find_all(Tag)) == 1

def test_session_transaction_commit_is_not_durable(app):
    s = Session(app)
    with s:
        transaction = s.begin_transaction()
        s.add(Tag('t1'))
        transaction.commit()
        s.rollback()

    s = Session(app)
    with s:
        assert s.find_all(Tag) == []

def test_session_transaction_rollback_keeps_earlier_work(app):
    s = Session(app)
    with s:
        s.add(Tag('t1'))
        transaction = s.begin_transaction()
        s.add(Tag('t2'))
        transaction.rollback()
        assert [tag.label for tag in s.find_all(Tag)] == ['t1']
        s.commit()

    s = Session(app)
    with s:
        assert [tag.label for tag in s.find_all(Tag)] == ['t1']

def test_session_transaction_rollback_restores_models(app):
    stored_tag = Tag('t1')
    s = Session(app)
    with s:
        s.add(stored_tag)
        transaction = s.begin_transaction()
        new_tag = Tag('t2')
        s.add(new_tag)
        stored_tag.label = 'renamed'
        s.save(stored_tag)
        assert not new_tag._is_new
        assert not stored_tag._is_dirty()

        transaction.rollback()
        assert new_tag._is_new
        assert stored_tag._to_update_dict() == {'label': 'renamed'}
        assert s.find_one(Tag, stored_tag._entry_id).label == 't1'

        # both are written again by the next save
        assert s.save(new_tag)
        assert s.save(stored_tag)
        assert sorted(tag.label for tag in s.find_all(Tag)) == ['renamed', 't2']

def test_session_nested_commit_is_restored_by_outer_rollback(app):
    tag = Tag('t1')
    s = Session(app)
    with s:
        outer = s.begin_transaction()
        s.begin_transaction()
        s.add(tag)
        outer.commit()
        assert not tag._is_new

        outer.rollback()
        assert tag._is_new
        assert s.find_all(Tag) == []

def test_session_nested_transaction_rollback(app):
    s = Session(app)
    with s:
        outer = s.begin_transaction()
        s.add(Tag('t1'))
        s.begin_transaction()
        s.add(Tag('t2'))
        assert outer.level == 2

        outer.rollback()
        assert [tag.label for tag in s.find_all(Tag)] == ['t1']

        outer.commit()
        assert not outer.is_active
        s.commit()

    s = Session(app)
    with s:
        assert [tag.label for tag in s.find_all(Tag)] == ['t1']

def test_session_inactive_transaction(app):
    s = Session(app)
    with s:
        with pytest.raises(RuntimeError) as e:
            s.transaction.commit()
        assert 'transaction was inactive' in str(e.value)
        with pytest.raises(RuntimeError):
            s.transaction.rollback()
