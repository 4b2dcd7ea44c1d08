import logging

logger = logging.getLogger(__name__)

# Keys
DEFAULT_USER = 'default_user'
DEFAULT_PASS = 'default_pass'
DEFAULT_TRANSPORT = 'default_transport'
DEFAULT_NAMESPACE = 'default_namespace'
POLYPHENY_CONTAINER_NAME = 'polypheny_container_name'
POLYPHENY_IMAGE_NAME = 'polypheny_image_name'
POLYPHENY_PORTS = 'polypheny_ports'
CONNECT_RETRIES = 'connect_retries'
CONNECT_RETRY_DELAY = 'connect_retry_delay'
IDENTITY_SEPARATOR = 'identity_separator'

_defaults = {
    DEFAULT_USER: 'pa',
    DEFAULT_PASS: '',
    DEFAULT_TRANSPORT: 'plain',
    DEFAULT_NAMESPACE: 'public',
    POLYPHENY_CONTAINER_NAME: 'polypheny',
    POLYPHENY_IMAGE_NAME: 'vogti/polypheny',
    POLYPHENY_PORTS: {
        "20590/tcp": 20590,
        "7659/tcp": 7659,
        "80/tcp": 80,
        "8081/tcp": 8081,
        "8082/tcp": 8082,
    },
    CONNECT_RETRIES: 30,
    CONNECT_RETRY_DELAY: 2.0,
    IDENTITY_SEPARATOR: '-',
}

_values = dict(_defaults)
_locked = False


def get(key):
    if key not in _values:
        raise KeyError(f"Unknown configuration key '{key}'")
    return _values[key]


def set(key, value):
    if _locked:
        message = f"Configuration is locked while an application is running. Cannot change '{key}'."
        logger.error(message)
        raise RuntimeError(message)
    if key not in _values:
        raise KeyError(f"Unknown configuration key '{key}'")
    _values[key] = value


def reset():
    if _locked:
        message = "Configuration is locked while an application is running."
        logger.error(message)
        raise RuntimeError(message)
    _values.clear()
    _values.update(_defaults)


def lock():
    global _locked
    _locked = True


def unlock():
    global _locked
    _locked = False


def is_locked():
    return _locked
