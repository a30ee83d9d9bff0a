import pytest

from tests.fakes import SECRET, HostScript
from yubiverify.domain.entities import ClientCredential


@pytest.fixture()
def credential():
    return ClientCredential(client_id="1234", secret=SECRET)


@pytest.fixture()
def unsigned_credential():
    return ClientCredential(client_id="1234")


@pytest.fixture()
def script():
    return HostScript()
