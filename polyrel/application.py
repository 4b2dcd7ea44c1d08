import logging

import polyrel.config as cfg
import polyrel.docker as docker
from polyrel.backends.memory import MemoryBackend, MemoryStore
from polyrel.backends.polypheny_backend import PolyphenyBackend
from polyrel.schema.schema_registry import _get_ordered_schemas

logger = logging.getLogger(__name__)


class Application:
    def __init__(
            self,
            address=None,
            user: str = None,
            password: str = None,
            transport: str = None,
            use_docker: bool = False,
            in_memory: bool = False,
            stop_container: bool = False,
            remove_container: bool = False
        ):
        if address is None and not in_memory:
            raise ValueError("An address is required unless the application runs in memory.")

        self._address = address
        self._user = user if user is not None else cfg.get(cfg.DEFAULT_USER)
        self._password = password if password is not None else cfg.get(cfg.DEFAULT_PASS)
        self._transport = transport if transport is not None else cfg.get(cfg.DEFAULT_TRANSPORT)
        self._use_docker = use_docker and not in_memory
        self._in_memory = in_memory
        self._stop_container = stop_container
        self._remove_container = remove_container

        self._store = MemoryStore() if in_memory else None
        self._initialized = False

    def __enter__(self):
        if self._initialized:
            raise ValueError("Application must only be initialized once.")
        cfg.lock()

        try:
            if self._use_docker:
                docker._deploy_polypheny(self._address, self._user, self._password, self._transport)
            self._process_schemas()
        except Exception:
            cfg.unlock()
            raise

        self._initialized = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._initialized = False
        try:
            if not self._use_docker:
                return
            container_name = cfg.get(cfg.POLYPHENY_CONTAINER_NAME)
            if self._stop_container:
                docker._stop_container_by_name(container_name)
            if self._remove_container:
                docker._remove_container_by_name(container_name)
        finally:
            cfg.unlock()

    def _create_backend(self):
        if self._in_memory:
            return MemoryBackend(self._store)
        return PolyphenyBackend(self._address, self._user, self._password, self._transport)

    def _process_schemas(self):
        backend = self._create_backend()
        backend.connect()
        try:
            for schema in _get_ordered_schemas():
                logger.info(f"Initializing entity {schema.entity_name} in namespace {schema._get_namespace()}.")
                backend.define(schema)
                logger.debug(f"Created entity {schema.entity_name} if absent.")
            backend.commit()
        finally:
            backend.close()
