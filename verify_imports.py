"""Verification script for dependency upgrades.

Run this script after installing the requirements to verify that the
service's third-party stack imports correctly.
"""
import importlib


MODULES = [
    "pydantic",
    "pydantic_settings",
    "fastapi",
    "sqlalchemy",
    "aiosqlite",
    "redis",
    "httpx",
    "tenacity",
    "telegram",
    "apscheduler",
    "pytest",
]


def verify_imports():
    print("Verifying imports...")
    
    for name in MODULES:
        try:
            module = importlib.import_module(name)
            version = getattr(module, "__version__", "unknown")
            print(f"✅ {name} imported successfully (version: {version})")
        except ImportError as e:
            print(f"❌ Failed to import {name}: {e}")
    
    try:
        import pricewatch.api.main  # noqa: F401
        print("✅ pricewatch.api.main imported successfully")
    except Exception as e:
        print(f"❌ Failed to import pricewatch.api.main: {e}")


if __name__ == "__main__":
    verify_imports()
