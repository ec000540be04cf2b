"""
Verify package imports work correctly.

These tests ensure the package is properly installed and modules
can be imported. Critical for catching setup.py/installation issues
in CI environments.
"""


def test_package_structure():
    """Verify exercise_pdf_service and its subpackages are importable."""
    import importlib.util

    for name in ("exercise_pdf_service", "exercise_pdf_service.pool",
                 "exercise_pdf_service.queue", "exercise_pdf_service.templates"):
        assert importlib.util.find_spec(name) is not None, f"{name} should be importable"


def test_app_can_be_imported():
    """Verify the FastAPI app can be imported without starting Playwright."""
    from exercise_pdf_service.app import app

    assert app is not None
    paths = {route.path for route in app.routes}
    assert {"/health", "/generate-pdf"} <= paths


def test_entry_point_can_be_imported():
    from exercise_pdf_service.__main__ import main, parse_args

    assert callable(main)
    args = parse_args(["--port", "9000", "--log-level", "debug"])
    assert args.port == 9000
    assert args.log_level == "debug"
    assert args.host is None
