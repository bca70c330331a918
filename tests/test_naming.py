"""Tests for the column/field naming convention."""

import pytest

from db_mapper.mapping.naming import column_to_field, field_to_column


class TestColumnToField:
    """column_to_field() capitalizes and joins underscore tokens."""

    def test_simple(self) -> None:
        """user_name becomes UserName."""
        assert column_to_field("user_name") == "UserName"

    def test_single_token(self) -> None:
        """A single token is capitalized."""
        assert column_to_field("id") == "Id"

    def test_single_letter_tokens(self) -> None:
        """One-letter tokens each become a capital."""
        assert column_to_field("test_orm_d_id") == "TestOrmDId"

    def test_digit_token_keeps_underscore(self) -> None:
        """A token starting with a digit keeps its separator."""
        assert column_to_field("v_2") == "V_2"

    def test_upper_case_input_is_lowered(self) -> None:
        """Upper-case column names are normalized first."""
        assert column_to_field("USER_NAME") == "UserName"


class TestFieldToColumn:
    """field_to_column() splits on capitals."""

    def test_simple(self) -> None:
        """UserName becomes user_name."""
        assert field_to_column("UserName") == "user_name"

    def test_camel_case(self) -> None:
        """Leading lower-case letter (camelCase) works the same."""
        assert field_to_column("otherId") == "other_id"

    def test_already_snake(self) -> None:
        """snake_case attribute names pass through."""
        assert field_to_column("article_id") == "article_id"

    def test_class_name(self) -> None:
        """Class names map to table names."""
        assert field_to_column("TestOrmA") == "test_orm_a"

    def test_digit_token(self) -> None:
        """V_2 maps back to v_2 without a doubled underscore."""
        assert field_to_column("V_2") == "v_2"


class TestRoundTrip:
    """field_to_column(column_to_field(c)) == c for lower-case snake columns."""

    @pytest.mark.parametrize(
        "column",
        [
            "id",
            "user_name",
            "test_orm_d_id",
            "a_b_c",
            "created_at",
            "v_2",
            "item_10_count",
            "x1_y2",
        ],
    )
    def test_round_trip(self, column: str) -> None:
        """Column survives a trip through the field name."""
        assert field_to_column(column_to_field(column)) == column
