import json
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--save-to-json",
        action="store",
        nargs="?",
        const="circuits_json",
        help="Save the circuit descriptions built by the tests to JSON files in the specified directory",
    )


@pytest.fixture
def save_to_json_folder(request):
    return request.config.getoption("--save-to-json")


@pytest.fixture
def save_circuit(save_to_json_folder):
    """Store `description.to_dict()` under `test_name` in data/<folder>/<filename>.json when saving is enabled."""

    def save(description, filename, test_name):
        if not save_to_json_folder:
            return
        output_dir = Path("data") / save_to_json_folder
        output_dir.mkdir(parents=True, exist_ok=True)
        json_file = output_dir / f"{filename}.json"

        data = {}
        if json_file.exists():
            with json_file.open("r") as f:
                data = json.load(f)

        data[test_name] = description.to_dict()

        with json_file.open("w") as f:
            json.dump(data, f, indent=4)

    return save
