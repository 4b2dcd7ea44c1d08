import time
import logging

import docker
import polypheny
from docker.errors import DockerException, NotFound, APIError

import polyrel.config as cfg

logger = logging.getLogger(__name__)


def _get_client():
    logger.info("Establishing connection to Docker...")
    try:
        client = docker.from_env()
        client.ping()
    except DockerException as e:
        logger.error("Docker is not running or not accessible.")
        raise RuntimeError("Docker is not running or not accessible.") from e
    return client


def _deploy_polypheny(address, user: str, password: str, transport: str):
    client = _get_client()
    container_name = cfg.get(cfg.POLYPHENY_CONTAINER_NAME)
    image_name = cfg.get(cfg.POLYPHENY_IMAGE_NAME)

    logger.info(f"Checking for presence of Polypheny container '{container_name}'...")
    try:
        container = client.containers.get(container_name)
        container.start()
        logger.info(f"Container '{container_name}' found and started.")
    except NotFound:
        logger.info("Polypheny container not found. Deploying a new container. This may take a moment...")
        try:
            client.images.pull(image_name)
            client.containers.run(
                image_name,
                name=container_name,
                ports=cfg.get(cfg.POLYPHENY_PORTS),
                detach=True
            )
            logger.info(f"New Polypheny container '{container_name}' deployed and started.")
        except DockerException as e:
            logger.error(f"Failed to create or run the Polypheny container: {e}")
            raise RuntimeError("Failed to create or run the Polypheny container.") from e

    _wait_for_polypheny(address, user, password, transport)


def _wait_for_polypheny(address, user: str, password: str, transport: str):
    retries = cfg.get(cfg.CONNECT_RETRIES)
    delay = cfg.get(cfg.CONNECT_RETRY_DELAY)
    for attempt in range(1, retries + 1):
        try:
            conn = polypheny.connect(address, username=user, password=password, transport=transport)
            conn.close()
            logger.info("Polypheny is accepting connections.")
            return
        except Exception as e:
            logger.debug(f"Polypheny not reachable yet (attempt {attempt}/{retries}): {e}")
            time.sleep(delay)

    message = f"Polypheny did not accept connections after {retries} attempts."
    logger.error(message)
    raise RuntimeError(message)


def _stop_container_by_name(container_name: str):
    client = _get_client()
    try:
        container = client.containers.get(container_name)
        if container.status == 'running':
            container.stop()
        logger.info(f"Container '{container_name}' stopped.")
    except NotFound:
        logger.warning(f"No container named '{container_name}' found.")
    except APIError as e:
        logger.error(f"Failed to stop the container '{container_name}'")
        raise RuntimeError(f"Failed to stop the container '{container_name}'") from e


def _remove_container_by_name(container_name: str):
    client = _get_client()
    try:
        container = client.containers.get(container_name)
        container.remove(force=True)
        logger.info(f"Container '{container_name}' removed.")
    except NotFound:
        logger.warning(f"No container named '{container_name}' found.")
    except APIError as e:
        logger.error(f"Failed to remove the container '{container_name}'")
        raise RuntimeError(f"Failed to remove the container '{container_name}'") from e
