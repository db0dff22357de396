"""Shared pytest fixtures for docstore tests."""

import pytest
import pytest_asyncio

from docstore.config import StoreConfig
from docstore.runtime.registry import SchemaRegistry
from docstore.runtime.store import DocumentStore
from docstore.specs import (
    Cardinality,
    FieldAnnotations,
    FieldKind,
    FieldSpec,
    RelationSpec,
    ResourceSpec,
    SchemaSpec,
)


def _id() -> FieldSpec:
    return FieldSpec(name="id", type=FieldKind.UUID, required=True)


def _created_at() -> FieldSpec:
    return FieldSpec(name="createdAt", type=FieldKind.DATETIME, required=True)


def _updated_at() -> FieldSpec:
    return FieldSpec(name="updatedAt", type=FieldKind.DATETIME, required=True)


def _enum(name: str, values: list[str], required: bool = True) -> FieldSpec:
    return FieldSpec(
        name=name,
        type=FieldKind.ENUM,
        required=required,
        annotations=FieldAnnotations(enum_values=values),
    )


@pytest.fixture
def todo_schema() -> SchemaSpec:
    """Lists and todos."""
    return SchemaSpec(
        name="todos",
        version="1.0.0",
        resources=[
            ResourceSpec(
                name="List",
                fields=[
                    _id(),
                    FieldSpec(name="name", type=FieldKind.TEXT, required=True),
                    FieldSpec(name="color", type=FieldKind.TEXT),
                    _created_at(),
                    _updated_at(),
                ],
            ),
            ResourceSpec(
                name="Todo",
                fields=[
                    _id(),
                    FieldSpec(name="title", type=FieldKind.TEXT, required=True),
                    FieldSpec(name="completed", type=FieldKind.BOOLEAN, required=True),
                    _enum("priority", ["low", "medium", "high"]),
                    FieldSpec(name="dueDate", type=FieldKind.DATE),
                    _created_at(),
                    _updated_at(),
                ],
                relations=[RelationSpec(name="list", to="List")],
            ),
        ],
    )


@pytest.fixture
def crm_schema() -> SchemaSpec:
    """Companies, contacts and deals."""
    return SchemaSpec(
        name="crm",
        version="1.0.0",
        resources=[
            ResourceSpec(
                name="Company",
                fields=[
                    _id(),
                    FieldSpec(name="name", type=FieldKind.TEXT, required=True),
                    FieldSpec(name="industry", type=FieldKind.TEXT),
                    _created_at(),
                ],
            ),
            ResourceSpec(
                name="Contact",
                fields=[
                    _id(),
                    FieldSpec(name="name", type=FieldKind.TEXT, required=True),
                    FieldSpec(name="email", type=FieldKind.EMAIL, required=True),
                    _created_at(),
                ],
                relations=[RelationSpec(name="company", to="Company")],
            ),
            ResourceSpec(
                name="Deal",
                fields=[
                    _id(),
                    FieldSpec(name="title", type=FieldKind.TEXT, required=True),
                    FieldSpec(name="value", type=FieldKind.NUMBER, required=True),
                    _enum("stage", ["discovery", "proposal", "negotiation", "won", "lost"]),
                    _created_at(),
                ],
                relations=[
                    RelationSpec(name="company", to="Company"),
                    RelationSpec(name="contact", to="Contact"),
                ],
            ),
        ],
    )


@pytest.fixture
def blog_schema() -> SchemaSpec:
    """Users, posts, comments and tags joined through PostTag."""
    return SchemaSpec(
        name="blog",
        resources=[
            ResourceSpec(
                name="User",
                fields=[_id(), FieldSpec(name="name", type=FieldKind.STRING, required=True)],
            ),
            ResourceSpec(
                name="Post",
                fields=[
                    _id(),
                    FieldSpec(name="title", type=FieldKind.STRING, required=True),
                    FieldSpec(name="body", type=FieldKind.TEXT),
                ],
                relations=[
                    RelationSpec(name="author", to="User", inverse="posts"),
                    RelationSpec(name="tags", to="Tag", cardinality=Cardinality.MANY),
                ],
            ),
            ResourceSpec(
                name="Comment",
                fields=[_id(), FieldSpec(name="text", type=FieldKind.TEXT, required=True)],
                relations=[
                    RelationSpec(name="post", to="Post"),
                    RelationSpec(name="author", to="User", inverse="comments"),
                ],
            ),
            ResourceSpec(
                name="Tag",
                fields=[_id(), FieldSpec(name="label", type=FieldKind.STRING, required=True)],
            ),
            ResourceSpec(
                name="PostTag",
                fields=[_id()],
                relations=[
                    RelationSpec(name="post", to="Post"),
                    RelationSpec(name="tag", to="Tag"),
                ],
            ),
        ],
    )


@pytest.fixture
def blog_registry(blog_schema: SchemaSpec) -> SchemaRegistry:
    return SchemaRegistry.from_schema(blog_schema)


@pytest.fixture
def memory_config() -> StoreConfig:
    return StoreConfig(in_memory=True, database="test")


@pytest_asyncio.fixture
async def todo_store(todo_schema: SchemaSpec, memory_config: StoreConfig):
    """Connected store for the todo schema."""
    store = DocumentStore(todo_schema, memory_config)
    await store.connect()
    yield store
    await store.disconnect()


@pytest_asyncio.fixture
async def crm_store(crm_schema: SchemaSpec, memory_config: StoreConfig):
    """Connected store for the CRM schema."""
    store = DocumentStore(crm_schema, memory_config)
    await store.connect()
    yield store
    await store.disconnect()


@pytest_asyncio.fixture
async def blog_store(blog_schema: SchemaSpec, memory_config: StoreConfig):
    """Connected store for the blog schema."""
    store = DocumentStore(blog_schema, memory_config)
    await store.connect()
    yield store
    await store.disconnect()
