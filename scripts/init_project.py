#!/usr/bin/env python3
"""
Initialize the trip ledger.

This script sets up the project by:
- Checking the Python version
- Loading environment variables
- Validating business configuration
- Creating the export directory for decision logs
- Running a sample settlement as a health check
"""

import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv


def check_python_version() -> bool:
    """Verify Python version is 3.10 or higher."""
    if sys.version_info < (3, 10):
        print(f"❌ Python 3.10+ required. Current version: {sys.version}")
        return False
    print(f"✅ Python version: {sys.version_info.major}.{sys.version_info.minor}")
    return True


def load_env() -> bool:
    """Load .env if present and report the settings that matter."""
    if Path(".env").exists():
        load_dotenv()
        print("✅ .env loaded")
    else:
        print("⚠️  No .env file; using defaults")

    for var in ("TRIPLEDGER_CONFIG_DIR", "LOG_LEVEL", "LOG_FORMAT"):
        value = os.getenv(var)
        print(f"   {var}={value if value else '(default)'}")
    return True


def check_config_files() -> bool:
    """Validate config.yaml parses and holds valid business rules."""
    from tripledger.core.config import ConfigManager
    from tripledger.core.errors import InvalidConfigurationError

    config_dir = Path(os.getenv("TRIPLEDGER_CONFIG_DIR", "config"))
    config_path = config_dir / "config.yaml"
    if not config_path.exists():
        print(f"❌ Business configuration not found: {config_path}")
        return False

    try:
        with open(config_path) as f:
            if not yaml.safe_load(f):
                print("❌ config.yaml is empty")
                return False
    except yaml.YAMLError as e:
        print(f"❌ Error parsing config.yaml: {e}")
        return False

    try:
        settings = ConfigManager(config_dir=config_dir).settings
    except InvalidConfigurationError as e:
        print(f"❌ {e}")
        return False

    print("✅ config.yaml is valid")
    print(f"   Driver pay expense policy: {settings.settlement.driver_pay_expense_policy}")
    print(
        f"   RFD thresholds: urgent <= {settings.rfd_urgency.urgent_days}d, "
        f"approaching <= {settings.rfd_urgency.approaching_days}d"
    )
    return True


def create_data_directories() -> bool:
    """Create necessary data directories."""
    directories = [
        "data/exports",
        "logs",
    ]

    for directory in directories:
        Path(directory).mkdir(parents=True, exist_ok=True)

    print(f"✅ Created {len(directories)} data directories")
    return True


def check_imports() -> bool:
    """Check that required packages can be imported."""
    required_packages = [
        "pydantic",
        "pydantic_settings",
        "structlog",
        "yaml",
        "dotenv",
    ]

    missing = []
    for package in required_packages:
        try:
            __import__(package)
        except ImportError:
            missing.append(package)

    if missing:
        print(f"❌ Missing packages: {', '.join(missing)}")
        print("   Run: uv sync")
        return False

    print("✅ All required packages installed")
    return True


def run_sample_settlement() -> bool:
    """Settle a one-load trip end to end."""
    from decimal import Decimal

    from tripledger.data.models import DriverCompensation, Load, Trip, TripStatus
    from tripledger.engines import TripSettlementAggregator

    trip = Trip(trip_id="INIT-CHECK", status=TripStatus.COMPLETED, actual_miles=Decimal("500"))
    trip.attach_load(
        Load(
            load_id="INIT-LOAD",
            actual_cuft_loaded=Decimal("1000"),
            contract_rate_per_cuft=Decimal("2.50"),
        )
    )
    driver = DriverCompensation(pay_mode="per_mile", rate_per_mile=Decimal("0.55"))

    settlement = TripSettlementAggregator().settle(trip, driver)
    if settlement.profit_total != Decimal("2225.00"):
        print(f"❌ Sample settlement profit was {settlement.profit_total}, expected 2225.00")
        return False

    print("✅ Sample settlement balanced")
    return True


def main():
    """Run all initialization checks."""
    print("=" * 60)
    print("Trip Ledger - Initialization")
    print("=" * 60)
    print()

    checks = [
        ("Python version", check_python_version),
        ("Environment", load_env),
        ("Package imports", check_imports),
        ("Configuration files", check_config_files),
        ("Data directories", create_data_directories),
        ("Sample settlement", run_sample_settlement),
    ]

    passed = 0
    failed = 0

    for name, check_func in checks:
        print(f"\nChecking {name}...")
        if check_func():
            passed += 1
        else:
            failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    if failed == 0:
        print("\n🎉 Trip ledger is ready.")
        return 0
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
