"""Package-level conventions."""

import importlib
import pkgutil

import pytest

import cri_assessment

MODULES = sorted(info.name for info in pkgutil.iter_modules(cri_assessment.__path__))


@pytest.mark.parametrize("name", MODULES)
def test_module_has_docstring(name):
    module = importlib.import_module(f"cri_assessment.{name}")
    assert module.__doc__ and module.__doc__.strip()


def test_package_docstring_lists_modules():
    for name in MODULES:
        assert name in cri_assessment.__doc__
