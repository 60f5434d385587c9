import importlib.util
import sys
import tempfile
import unittest
from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name):
    loader_spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(loader_spec)
    sys.modules[name] = module
    loader_spec.loader.exec_module(module)
    return module


class SeedDemoDataTests(unittest.TestCase):
    def test_sqlite_url_points_at_the_absolute_path(self):
        # Import inside test so unittest discovery doesn't fail if deps are missing
        from sqlalchemy.engine import make_url

        seed = _load_script("seed_demo_data")
        with tempfile.TemporaryDirectory() as tmp:
            db_path = Path(tmp).resolve() / "demo.db"
            url = seed._sqlite_url_for_path(db_path)

        self.assertTrue(url.startswith("sqlite+aiosqlite:////"))
        self.assertNotIn("/////", url)
        self.assertEqual(make_url(url).database, str(db_path))


if __name__ == "__main__":
    unittest.main()
