"""Pytest configuration and fixtures."""

import logging
from typing import Any, Dict, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from sherdview.database.schema import Base
from sherdview.retrieval.memory_store import InMemoryDocumentStore


def single_branch_tree(
    objects: Dict[str, Dict[str, Any]],
    project_id: str = "P1",
    group_fields: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Fixture tree with one study area, strat unit, container and group holding `objects`."""
    return {
        "projects": {
            project_id: {
                "fields": {},
                "collections": {
                    "studyAreas": {
                        "SA1": {
                            "collections": {
                                "stratUnits": {
                                    "SU1": {
                                        "collections": {
                                            "containers": {
                                                "C1": {
                                                    "collections": {
                                                        "groups": {
                                                            "G1": {
                                                                "fields": group_fields if group_fields is not None else {"label": "Group one"},
                                                                "collections": {
                                                                    "objects": {
                                                                        obj_id: {"fields": fields}
                                                                        for obj_id, fields in objects.items()
                                                                    }
                                                                },
                                                            }
                                                        }
                                                    }
                                                }
                                            }
                                        }
                                    }
                                }
                            }
                        }
                    }
                },
            }
        }
    }


def universal_tree(records: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return {"universal": {doc_id: {"fields": fields} for doc_id, fields in records.items()}}


@pytest.fixture
def session():
    """Create a temporary in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def scenario_store():
    """One branch, two objects: count=2/weight=4.5 and count=1/weight=1.2."""
    tree = single_branch_tree(
        {
            "o1": {"diagnostic": "Rim", "qualification": "Everted", "weight": 4.5, "count": 2},
            "o2": {"diagnostic": "Base", "qualification": "Flat", "weight": 1.2, "count": 1},
        }
    )
    return InMemoryDocumentStore.from_tree(tree)


@pytest.fixture
def diagnostic_store():
    """Universal records tagged Rim, Rim, Base and an empty tag, newest first in that order."""
    return InMemoryDocumentStore.from_tree(
        universal_tree(
            {
                "a": {"projectId": "P1", "diagnosticType": "Rim", "createdAt": "2024-01-04T00:00:00Z"},
                "b": {"projectId": "P1", "diagnosticType": "Rim", "createdAt": "2024-01-03T00:00:00Z"},
                "c": {"projectId": "P2", "diagnosticType": "Base", "createdAt": "2024-01-02T00:00:00Z"},
                "d": {"projectId": "P2", "diagnosticType": "", "createdAt": "2024-01-01T00:00:00Z"},
            }
        )
    )


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by configure_logging so they never outlive a captured stream."""
    yield
    package_logger = logging.getLogger("sherdview")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
