import pytest
import sys

@pytest.fixture(autouse=True)
def clean_pblmix_imports():
    yield
    keys_to_delete = {key for key in sys.modules if key == "pblmix" or key.startswith("pblmix.")}
    for key in keys_to_delete:
        del sys.modules[key]
