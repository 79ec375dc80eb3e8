import pytest
from loguru import logger

from core.config import RigConfig
from core.session import SessionManager
from drivers.fake_bus import FakeBus


@pytest.fixture(autouse=True)
def log(request):
    logger.info("STARTED Test '{}'", request.node.originalname)
    yield
    logger.info("COMPLETED Test '{}'", request.node.originalname)


@pytest.fixture
def config():
    return RigConfig(srq_timeout_s=2.0)


@pytest.fixture
def buses(config):
    """FakeBus по адресу; тест может заменить шину до connect."""
    return {
        config.meter_address: FakeBus(),
        config.source_address: FakeBus(),
    }


@pytest.fixture
def sessions(config, buses):
    manager = SessionManager(config, bus_factory=lambda address: buses[address])
    yield manager
    manager.close()
