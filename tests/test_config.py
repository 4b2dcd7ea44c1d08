import pytest
import polyrel.config as cfg


def test_defaults():
    assert cfg.get(cfg.DEFAULT_NAMESPACE) == 'public'
    assert cfg.get(cfg.IDENTITY_SEPARATOR) == '-'
    assert not cfg.is_locked()

def test_set_and_reset():
    cfg.set(cfg.IDENTITY_SEPARATOR, '/')
    assert cfg.get(cfg.IDENTITY_SEPARATOR) == '/'
    cfg.reset()
    assert cfg.get(cfg.IDENTITY_SEPARATOR) == '-'

def test_unknown_key():
    with pytest.raises(KeyError):
        cfg.get('missing')
    with pytest.raises(KeyError):
        cfg.set('missing', 1)

def test_locked_configuration():
    cfg.lock()
    with pytest.raises(RuntimeError) as e:
        cfg.set(cfg.DEFAULT_USER, 'someone')
    assert 'locked' in str(e.value)
    with pytest.raises(RuntimeError):
        cfg.reset()
    cfg.unlock()
    cfg.set(cfg.DEFAULT_USER, 'someone')
    assert cfg.get(cfg.DEFAULT_USER) == 'someone'
