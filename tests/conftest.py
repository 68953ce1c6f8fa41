import socket
from concurrent.futures import ThreadPoolExecutor

import pytest

from ecchannel.crypto import generate_signing_key


@pytest.fixture
def sock_pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def executor():
    with ThreadPoolExecutor(max_workers=2) as ex:
        yield ex


@pytest.fixture
def signing_key():
    return generate_signing_key()
