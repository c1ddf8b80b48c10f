"""Hypothesis profiles for the property-based reconciliation tests."""

from hypothesis import HealthCheck, settings, Verbosity
from hypothesis.database import DirectoryBasedExampleDatabase
import os


class PropertyTestConfig:
    """Profile settings shared by every property-based test."""

    # Examples per property in the default and CI profiles
    MIN_ITERATIONS = 100

    # Examples per property when exploring locally
    MAX_ITERATIONS = 1000

    DETERMINISTIC_SEED = 42

    # Failing examples are replayed from here on the next run
    EXAMPLE_DATABASE_PATH = "tests/property_based/.hypothesis_examples"

    VERBOSITY = Verbosity.normal

    # Reconciliation runs in memory, but the SQLite-backed properties do I/O
    DEADLINE = 2000  # milliseconds

    SUPPRESSED_HEALTH_CHECKS = [HealthCheck.function_scoped_fixture]

    @classmethod
    def configure_hypothesis(cls):
        """Register the profiles and load the one named by HYPOTHESIS_PROFILE."""
        os.makedirs(cls.EXAMPLE_DATABASE_PATH, exist_ok=True)

        settings.register_profile(
            "production_hardening",
            max_examples=cls.MIN_ITERATIONS,
            deadline=cls.DEADLINE,
            verbosity=cls.VERBOSITY,
            database=DirectoryBasedExampleDatabase(cls.EXAMPLE_DATABASE_PATH),
            suppress_health_check=cls.SUPPRESSED_HEALTH_CHECKS,
            print_blob=True,
        )

        # derandomize requires database=None
        settings.register_profile(
            "ci",
            max_examples=cls.MIN_ITERATIONS,
            deadline=None,
            verbosity=Verbosity.quiet,
            database=None,
            derandomize=True,
            suppress_health_check=cls.SUPPRESSED_HEALTH_CHECKS,
            print_blob=True,
        )

        settings.register_profile(
            "dev",
            max_examples=cls.MAX_ITERATIONS,
            deadline=cls.DEADLINE,
            verbosity=Verbosity.verbose,
            database=DirectoryBasedExampleDatabase(cls.EXAMPLE_DATABASE_PATH),
            suppress_health_check=cls.SUPPRESSED_HEALTH_CHECKS,
            print_blob=True,
        )

        profile = os.getenv("HYPOTHESIS_PROFILE", "production_hardening")
        settings.load_profile(profile)


PropertyTestConfig.configure_hypothesis()


def get_test_seed():
    """Deterministic seed in CI, None (random) elsewhere."""
    if os.getenv("CI") or os.getenv("HYPOTHESIS_PROFILE") == "ci":
        return PropertyTestConfig.DETERMINISTIC_SEED
    return None


def is_ci_environment():
    return bool(os.getenv("CI"))


def get_max_examples():
    if is_ci_environment():
        return PropertyTestConfig.MIN_ITERATIONS
    return PropertyTestConfig.MAX_ITERATIONS
