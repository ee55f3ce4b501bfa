from sqlalchemy import Column, Index, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Document(Base):
    """One document of a path-addressed document tree.
    
    Paths alternate collection and document segments, e.g.
    "projects/P1/studyAreas/SA1". collection_path is everything before the
    last segment, collection_id the last collection segment.
    """
    __tablename__ = "documents"

    path = Column(String, primary_key=True)
    collection_path = Column(String, nullable=False, index=True)
    collection_id = Column(String, nullable=False)
    doc_id = Column(String, nullable=False)
    depth = Column(Integer, nullable=False)  # number of path segments
    data_json = Column(Text, nullable=False, default="{}")
    created_at_utc = Column(String, nullable=True)  # ISO 8601, when the row was written

    __table_args__ = (
        Index("ix_documents_collection_doc", "collection_path", "doc_id"),
        Index("ix_documents_collection_id_depth", "collection_id", "depth"),
    )


def create_all(engine: Engine) -> None:
    """Create the documents table and its indexes if they do not exist."""
    Base.metadata.create_all(engine)
