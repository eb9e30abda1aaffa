"""
Configuration for pytest fixtures and utilities.
"""
import os
import sys
import shutil
import tempfile
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from repo_rag.models.knowledge import FileInfo
from repo_rag.services.rag_engine import RAGEngine


@pytest.fixture
def fixed_time():
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_rag_engine():
    """Return a RAG engine whose storage calls are recorded, not executed."""
    engine = MagicMock(spec=RAGEngine)
    engine.add_knowledge = AsyncMock(return_value=1)
    engine.update_knowledge = AsyncMock(return_value=1)
    engine.remove_knowledge = AsyncMock()
    engine.remove_repository_knowledge = AsyncMock()
    return engine


# Test data fixtures
@pytest.fixture
def sample_js_code():
    """Return a sample React component."""
    return """/**
 * Renders the login form
 * and handles submission.
 */
import React, { useState } from 'react';
import { login } from './api/auth';

export default function LoginForm(props) {
  const [user, setUser] = useState(null);
  const submit = async (event) => {
    if (user && props.enabled) {
      return login(user);
    }
  };
  return null;
}
"""


@pytest.fixture
def sample_python_code():
    """Return a sample Flask module."""
    return """# User service
# Persists users to the database.
from flask import Flask
import os

class UserService:
    def __init__(self, db):
        self.db = db

    def get_user(self, user_id):
        return self.db.get(user_id)
"""


@pytest.fixture
def make_file_info(fixed_time):
    """Return a factory for FileInfo values."""
    def _make(file_path, content, repository="acme/api"):
        return FileInfo(
            repository=repository,
            file_path=file_path,
            content=content,
            last_modified=fixed_time
        )
    return _make


@pytest.fixture
def test_repository_path():
    """Create a temporary repository structure for testing."""
    repo_dir = tempfile.mkdtemp()

    os.makedirs(os.path.join(repo_dir, "src", "services"), exist_ok=True)
    os.makedirs(os.path.join(repo_dir, "node_modules", "lib"), exist_ok=True)
    os.makedirs(os.path.join(repo_dir, "tmp"), exist_ok=True)

    with open(os.path.join(repo_dir, "src", "services", "user_service.py"), "w") as f:
        f.write("""
class UserService:
    def get_user(self, user_id):
        return user_id
""")

    with open(os.path.join(repo_dir, "src", "index.js"), "w") as f:
        f.write("export function main() { return 1; }\n")

    with open(os.path.join(repo_dir, "src", "logo.png"), "wb") as f:
        f.write(b"\x89PNG")

    with open(os.path.join(repo_dir, "node_modules", "lib", "index.js"), "w") as f:
        f.write("module.exports = {};\n")

    with open(os.path.join(repo_dir, "tmp", "scratch.py"), "w") as f:
        f.write("x = 1\n")

    yield repo_dir

    # Clean up
    shutil.rmtree(repo_dir)
