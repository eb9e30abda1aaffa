"""
Tests for building knowledge items from files.
"""
import hashlib

import pytest

from repo_rag.services.knowledge_extraction.knowledge_builder import (
    KnowledgeItemBuilder,
    UNKNOWN_FILE_TYPE,
    generate_knowledge_id,
    get_file_type,
)


class TestKnowledgeHelpers:

    def test_generate_knowledge_id(self):
        assert generate_knowledge_id("acme/api", "src/app.js") == "acme_api_src_app_js"

    def test_generate_knowledge_id_is_stable(self):
        first = generate_knowledge_id("acme/web-app", "src/components/Button.tsx")
        second = generate_knowledge_id("acme/web-app", "src/components/Button.tsx")
        assert first == second

    @pytest.mark.parametrize("path,expected", [
        ("src/App.JSX", "javascript"),
        ("src/index.tsx", "typescript"),
        ("tool.py", "python"),
        ("deploy.yml", "yaml"),
        ("run.sh", "shell"),
        ("include/util.h", UNKNOWN_FILE_TYPE),
        ("Makefile", UNKNOWN_FILE_TYPE),
    ])
    def test_get_file_type(self, path, expected):
        assert get_file_type(path) == expected


class TestKnowledgeItemBuilder:

    def setup_method(self):
        """Set up test fixtures."""
        self.builder = KnowledgeItemBuilder()

    def test_login_file(self, make_file_info):
        """Test the tags of a small JavaScript file."""
        content = "// Handles user login\nfunction login(user) { if (user) { return true; } }"

        item = self.builder.build(make_file_info("src/auth/login.js", content))

        assert item.title == "login.js - login"
        assert set(item.metadata.tags) == {"javascript", "functions", "simple"}
        assert item.metadata.file_type == "javascript"
        assert item.metadata.language == "javascript"

    def test_same_path_same_id_new_hash(self, make_file_info):
        first = self.builder.build(make_file_info("src/app.py", "x = 1\n"))
        second = self.builder.build(make_file_info("src/app.py", "x = 2\n"))

        assert first.id == second.id
        assert first.metadata.content_hash != second.metadata.content_hash

    def test_build_is_idempotent(self, make_file_info, sample_python_code):
        info = make_file_info("src/services/user_service.py", sample_python_code)

        first = self.builder.build(info)
        second = self.builder.build(info)

        assert first == second
        assert first.id == second.id
        assert first.content == second.content
        assert first.metadata.content_hash == second.metadata.content_hash

    def test_content_hash(self, make_file_info):
        content = "print('hello')\n"
        item = self.builder.build(make_file_info("hello.py", content))
        assert item.metadata.content_hash == hashlib.sha256(content.encode("utf-8")).hexdigest()

    def test_ineligible_file_returns_none(self, make_file_info):
        assert self.builder.build(make_file_info("node_modules/lib/index.js", "x")) is None
        assert self.builder.build(make_file_info("assets/logo.png", "x")) is None

    def test_unknown_file_type_still_built(self, make_file_info):
        item = self.builder.build(make_file_info("include/types.h", "struct point { int x; };"))

        assert item is not None
        assert item.metadata.file_type == UNKNOWN_FILE_TYPE
        assert UNKNOWN_FILE_TYPE in item.metadata.tags

    def test_metadata_fields(self, make_file_info, sample_python_code, fixed_time):
        item = self.builder.build(make_file_info("src/services/user_service.py", sample_python_code))
        metadata = item.metadata

        assert item.id == "acme_api_src_services_user_service_py"
        assert metadata.repository == "acme/api"
        assert metadata.file_path == "src/services/user_service.py"
        assert metadata.last_modified == fixed_time
        assert metadata.framework == "Flask"
        assert metadata.dependencies == ("flask", "os")
        assert list(metadata.tags) == ["service", "python", "Flask", "functions", "classes", "simple"]

    def test_title_prefers_class_over_exports(self, make_file_info):
        item = self.builder.build(make_file_info("models/user.ts", "export class User {}"))
        assert item.title == "user.ts - User"

    def test_title_from_exports(self, make_file_info):
        content = "export const A = 1;\nexport const B = 2;\nexport const C = 3;"
        item = self.builder.build(make_file_info("src/consts.js", content))
        assert item.title == "consts.js - A, B"

    def test_title_falls_back_to_file_name(self, make_file_info):
        item = self.builder.build(make_file_info("docs/README.md", "Project notes"))
        assert item.title == "README.md"

    def test_path_tags(self, make_file_info):
        item = self.builder.build(make_file_info("src/api/user_controller_test.js", "x"))
        assert list(item.metadata.tags[:3]) == ["test", "api", "controller"]

    def test_dependency_tags_are_distinct(self, make_file_info):
        content = "import React from 'react';\nimport { render } from 'react-dom';"
        item = self.builder.build(make_file_info("src/main.jsx", content))

        assert list(item.metadata.tags).count("react") == 1
        assert len(item.metadata.tags) == len(set(item.metadata.tags))

    def test_moderate_complexity_has_no_size_tag(self, make_file_info):
        content = "\n".join(["if (a) { b(); }"] * 5)
        item = self.builder.build(make_file_info("src/flow.js", content))

        assert "simple" not in item.metadata.tags
        assert "complex" not in item.metadata.tags

    def test_high_complexity_tag(self, make_file_info):
        content = "\n".join(["if (a) { b(); }"] * 11)
        item = self.builder.build(make_file_info("src/flow.js", content))
        assert "complex" in item.metadata.tags

    def test_prepared_content(self, make_file_info):
        item = self.builder.build(make_file_info("src/a.py", "x = 1"))

        assert item.content == (
            "File: src/a.py\n"
            "Language: python\n"
            "Framework: None\n"
            "\n"
            "Summary: x = 1\n"
            "\n"
            "Dependencies:\n"
            "\n"
            "\n"
            "Functions: \n"
            "Classes: \n"
            "Complexity: 0\n"
            "\n"
            "Content:\n"
            "x = 1"
        )

    def test_prepared_content_lists_dependencies(self, make_file_info, sample_python_code):
        item = self.builder.build(make_file_info("svc.py", sample_python_code))

        assert "Dependencies:\n- flask\n- os\n" in item.content
        assert "Classes: UserService, UserService\n" in item.content
        assert item.content.endswith(sample_python_code.strip())
