"""Shared test fixtures for speclint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from speclint.document.index import ResolveOptions, build_index
from speclint.document.model import Document
from speclint.rules import default_registry

if TYPE_CHECKING:
    from collections.abc import Callable

    from speclint.document.index import Index
    from speclint.linter.registry import Registry


PETSTORE = """\
openapi: 3.1.0
info:
  title: Petstore
  version: 1.0.0
servers:
  - url: https://api.example.com
paths:
  /pets:
    get:
      operationId: listPets
      responses:
        '200':
          description: A list of pets
          content:
            application/json:
              schema:
                type: array
                items:
                  $ref: '#/components/schemas/Pet'
  /pets/{petId}:
    parameters:
      - $ref: '#/components/parameters/PetId'
    get:
      operationId: getPet
      responses:
        '200':
          description: A pet
          content:
            application/json:
              schema:
                $ref: '#/components/schemas/Pet'
components:
  parameters:
    PetId:
      name: petId
      in: path
      required: true
      schema:
        type: string
  schemas:
    Pet:
      type: object
      properties:
        name:
          type: string
        tag:
          $ref: '#/components/schemas/Tag'
    Tag:
      type: string
"""


@pytest.fixture()
def registry() -> Registry:
    """A fresh registry with every built-in rule."""
    return default_registry()


@pytest.fixture()
def make_document() -> Callable[..., Document]:
    """Parse YAML text into a Document located at ``openapi.yaml``."""

    def _make(text: str, location: str = "openapi.yaml") -> Document:
        return Document.from_text(text, location=location)

    return _make


@pytest.fixture()
def make_index() -> Callable[..., Index]:
    """Parse YAML text and index it with external references disabled."""

    def _make(text: str, location: str = "openapi.yaml") -> Index:
        document = Document.from_text(text, location=location)
        return build_index(document, ResolveOptions(disable_external_refs=True))

    return _make


@pytest.fixture()
def petstore_text() -> str:
    return PETSTORE
