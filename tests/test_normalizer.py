from api_contract_checker.parser.normalizer import normalize_document, normalize_schema


class TestNormalizeSchema:
    def test_nullable_becomes_type_union(self):
        assert normalize_schema({"type": "string", "nullable": True}) == {"type": ["string", "null"]}

    def test_nullable_type_list_not_duplicated(self):
        assert normalize_schema({"type": ["string", "null"], "nullable": True}) == {"type": ["string", "null"]}

    def test_nullable_false_dropped(self):
        assert normalize_schema({"type": "string", "nullable": False}) == {"type": "string"}

    def test_nullable_without_type_dropped(self):
        assert normalize_schema({"nullable": True, "minLength": 1}) == {"minLength": 1}

    def test_nullable_enum_gains_null(self):
        result = normalize_schema({"type": "string", "enum": ["a"], "nullable": True})
        assert result["enum"] == ["a", None]

    def test_x_nullable(self):
        assert normalize_schema({"type": "integer", "x-nullable": True}) == {"type": ["integer", "null"]}

    def test_presentation_and_vendor_keys_stripped(self):
        schema = {
            "type": "string",
            "example": "x",
            "examples": ["x"],
            "deprecated": True,
            "xml": {"name": "x"},
            "externalDocs": {"url": "https://example.com"},
            "discriminator": {"propertyName": "kind"},
            "x-internal": True,
            "description": "kept",
        }
        assert normalize_schema(schema) == {"type": "string", "description": "kept"}

    def test_property_names_are_not_stripped(self):
        schema = {"type": "object", "properties": {"example": {"type": "string", "example": "e"}}}
        assert normalize_schema(schema) == {"type": "object", "properties": {"example": {"type": "string"}}}

    def test_recurses_into_items_and_combinators(self):
        schema = {
            "type": "array",
            "items": {"type": "object", "properties": {"n": {"type": "integer", "nullable": True}}},
            "anyOf": [{"type": "string", "nullable": True}],
        }
        result = normalize_schema(schema)
        assert result["items"]["properties"]["n"]["type"] == ["integer", "null"]
        assert result["anyOf"][0]["type"] == ["string", "null"]

    def test_input_not_mutated(self):
        schema = {"type": "string", "nullable": True}
        normalize_schema(schema)
        assert schema == {"type": "string", "nullable": True}


class TestNormalizeDocument:
    def test_all_schema_positions(self):
        nullable = {"type": "string", "nullable": True, "example": "e"}
        expected = {"type": ["string", "null"]}
        doc = {
            "paths": {
                "/a": {
                    "parameters": [{"name": "p", "in": "query", "schema": dict(nullable)}],
                    "post": {
                        "parameters": [{"name": "q", "in": "query", "schema": dict(nullable)}],
                        "requestBody": {"content": {"application/json": {"schema": dict(nullable)}}},
                        "responses": {
                            "200": {
                                "content": {"application/json": {"schema": dict(nullable)}},
                                "headers": {"X-Id": {"schema": dict(nullable)}},
                            }
                        },
                    },
                }
            },
            "components": {"schemas": {"S": dict(nullable)}},
        }
        result = normalize_document(doc)
        item = result["paths"]["/a"]
        assert item["parameters"][0]["schema"] == expected
        assert item["post"]["parameters"][0]["schema"] == expected
        assert item["post"]["requestBody"]["content"]["application/json"]["schema"] == expected
        response = item["post"]["responses"]["200"]
        assert response["content"]["application/json"]["schema"] == expected
        assert response["headers"]["X-Id"]["schema"] == expected
        assert result["components"]["schemas"]["S"] == expected
        assert doc["components"]["schemas"]["S"] == nullable

    def test_malformed_components_skipped(self):
        doc = {"paths": {}, "components": ["S"]}
        assert normalize_document(doc) == doc
