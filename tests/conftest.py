import json
import logging

import pytest

from core.ResourceManager import ResourceManager

CONDITIONS_CSV = (
    "word,n,rgb,note\n"
    "red,1,\"[1, 0, 0]\",\n"
    "\n"
    "green,0.5,\"[0 1 0]\",slow\n"
    "blue,-2,[],fast\n"
)


@pytest.fixture
def abc_conditions():
    return [{'label': 'A', 'value': 1},
            {'label': 'B', 'value': 2},
            {'label': 'C', 'value': 3}]


@pytest.fixture
def resource_manager(tmp_path):
    (tmp_path / "conditions.csv").write_text(CONDITIONS_CSV, encoding="utf-8")
    return ResourceManager(str(tmp_path))


@pytest.fixture
def conf_file(tmp_path):
    """local_conf.json writing data and logs inside tmp_path"""
    conf = {
        "log_level": "DEBUG",
        "source_path": str(tmp_path / "data"),
        "resource_path": str(tmp_path),
        "save_format": "csv",
        "log_file": str(tmp_path / "logs" / "log.txt"),
    }
    path = tmp_path / "local_conf.json"
    path.write_text(json.dumps(conf), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """remove the handlers a Logger adds to the root logger"""
    root = logging.getLogger("")
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
