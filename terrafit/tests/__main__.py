"""
Run the terrafit test suite from a source checkout.

    python -m terrafit.tests                    # everything
    python -m terrafit.tests mesh solver -x     # test_mesh.py and test_solver.py, stop on first failure

Bare names are expanded to the matching ``test/test_<name>.py`` module; any
other argument is handed to pytest unchanged. Wheels do not ship ``test/``.
"""
import pathlib
import sys

import pytest


def find_test_dir():
    """Return the checkout's ``test/`` folder, or None for an installed wheel."""
    tests_dir = pathlib.Path(__file__).resolve().parents[2] / "test"
    return tests_dir if tests_dir.is_dir() else None


def expand_targets(args, tests_dir):
    targets = []
    options = []
    for arg in args:
        module = tests_dir / "test_{}.py".format(arg)
        if not arg.startswith("-") and module.is_file():
            targets.append(str(module))
        else:
            options.append(arg)
    if not targets:
        targets.append(str(tests_dir))
    return targets + options


def main(argv=None):
    tests_dir = find_test_dir()
    if tests_dir is None:
        print("No test/ folder next to this terrafit installation; "
              "run the suite from a clone of the repository.")
        return 1
    args = sys.argv[1:] if argv is None else list(argv)
    return int(pytest.main(expand_targets(args, tests_dir)))


if __name__ == "__main__":
    sys.exit(main())
