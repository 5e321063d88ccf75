import os
import pytest


@pytest.fixture(scope="session")
def host():
    return os.getenv("HIVE_HOST")


@pytest.fixture(scope="session")
def port():
    return int(os.getenv("HIVE_PORT", "10000"))


@pytest.fixture(scope="session")
def transport():
    return os.getenv("HIVE_TRANSPORT", "buffered")


@pytest.fixture(scope="session")
def hive_version():
    return os.getenv("HIVE_VERSION", "10")


@pytest.fixture(scope="session")
def username():
    return os.getenv("HIVE_USER")


@pytest.fixture(scope="session")
def password():
    return os.getenv("HIVE_PASSWORD")


@pytest.fixture(scope="session", autouse=True)
def connection_details(host, port, transport, hive_version, username, password):
    return {
        "host": host,
        "port": port,
        "transport": transport,
        "hive_version": hive_version,
        "username": username,
        "password": password,
    }
