"""
Pytest configuration and fixtures for profile-sync tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import psycopg
import pytest
from dotenv import dotenv_values
from pyspark.sql import SparkSession
from testcontainers.postgres import PostgresContainer

from profile_sync.core.models import SourceRecord
from profile_sync.warehouse.connection import DatabaseConnectionPool
from profile_sync.warehouse.store import InMemoryProfileStore


ROOT = Path(__file__).resolve().parent.parent


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session() -> Generator[SparkSession, None, None]:
    """
    Create a Spark session for testing with local mode

    Yields:
        SparkSession configured for local testing
    """
    spark = (
        SparkSession.builder
        .appName("profile-sync-test")
        .master("local[2]")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.driver.memory", "1g")
        .config("spark.ui.enabled", "false")  # Disable UI for tests
        .config("spark.sql.warehouse.dir", "/tmp/spark-warehouse")
        .getOrCreate()
    )

    # Set log level to WARN to reduce test output noise
    spark.sparkContext.setLogLevel("WARN")

    yield spark

    spark.stop()


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_profiles",
        driver=None,
    ) as postgres:
        init_sql = (ROOT / "docker" / "init-db.sql").read_text()
        with psycopg.connect(postgres.get_connection_url()) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


@pytest.fixture(scope="session")
def db_settings(postgres_container) -> dict:
    """
    Connection settings of the test container

    Returns:
        Keyword arguments for DatabaseConnectionPool
    """
    return {
        "host": postgres_container.get_container_host_ip(),
        "port": int(postgres_container.get_exposed_port(5432)),
        "database": "test_profiles",
        "user": "test_pipeline",
        "password": "test_password",
    }


@pytest.fixture(scope="function")
def db_connection(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a database connection for a single test

    Yields:
        psycopg Connection object
    """
    conn_url = postgres_container.get_connection_url()
    with psycopg.connect(conn_url) as conn:
        yield conn
        # Rollback any uncommitted changes after test
        conn.rollback()


@pytest.fixture(scope="function")
def clean_db(db_connection) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a clean database by truncating all tables before each test

    Yields:
        psycopg Connection object with clean database
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE flattened_profiles")
        cur.execute("TRUNCATE TABLE public_profiles")
        db_connection.commit()

    yield db_connection


@pytest.fixture(scope="function")
def db_pool(db_settings, clean_db) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Provide an open connection pool against a clean database

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(**db_settings, max_size=4)
    pool.open()
    yield pool
    pool.close()


# =======================
# PROFILE FIXTURES
# =======================

@pytest.fixture
def jane_document() -> dict:
    """Legacy flat-shape profile document"""
    return {
        "name": "Jane Smith",
        "headline": "Product Manager",
        "location": "New York, NY",
        "skills": ["Product Strategy", "User Research"],
        "work_experience": [
            {
                "company": "BigTech Corp",
                "title": "Senior PM",
                "start_date": "2021-03",
                "end_date": "current",
            }
        ],
    }


@pytest.fixture
def nested_document() -> dict:
    """Nested candidate-shape profile document"""
    return {
        "candidate": {
            "name": "Ana Lima",
            "headline": "Data Engineer",
            "contact": {"email": "ana@example.com"},
            "location": {"city": "Lisbon", "country": "Portugal"},
            "skills": "Python, Spark; SQL",
            "experience": [
                {
                    "company": {"name": "Acme Analytics", "industry": "Software"},
                    "role": {"title": "Data Engineer"},
                    "duration": {"start_date": "2020-05", "to_present": True},
                },
                {
                    "company": {"name": "Old Bank", "industry": "Finance"},
                    "role": {"title": "Analyst"},
                    "duration": {"start_date": "2016-09", "end_date": "2020-04"},
                },
            ],
            "education": [
                {"degree": "BSc", "school": {"name": "Universidade de Lisboa"}, "field": "Statistics"}
            ],
        }
    }


@pytest.fixture
def make_record():
    """Factory for SourceRecords with a minute-based version"""
    def _make(key, document, minute=None, label=None):
        version = None
        if minute is not None:
            version = datetime(2024, 6, 1, 12, minute, tzinfo=timezone.utc)
        return SourceRecord(key=key, document=document, label=label, source_version=version)

    return _make


@pytest.fixture
def memory_store() -> InMemoryProfileStore:
    """Fresh in-memory flattened profile store"""
    return InMemoryProfileStore()


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def test_env_vars(monkeypatch) -> dict:
    """Apply config/test.env to the environment for one test"""
    values = dotenv_values(ROOT / "config" / "test.env")
    for name, value in values.items():
        monkeypatch.setenv(name, value or "")
    return values
