"""Tests for write operations against the fake executor.

Covers template compilation, parameter sources, the affected-row check,
single insert with key write-back and batch insert id assignment.
"""

from dataclasses import dataclass

import pytest

from db_mapper.errors import (
    MissingParamError,
    OrmError,
    RowAffectError,
    TypeShapeError,
    is_row_affect_error,
)
from db_mapper.mapping.fields import has_many, ignore, pk
from db_mapper.orm.statements import (
    MappingParams,
    RecordParams,
    compile_template,
    exec_with_param,
    exec_with_row_affect_check,
    insert,
    insert_batch,
    param_source,
)


# ============================================================================
# Record types
# ============================================================================


@dataclass
class Line:
    line_id: int = pk()
    order_id: int = 0


@dataclass
class Order:
    order_id: int = pk(auto=True)
    customer: str = ""
    total: float = 0.0
    draft: bool | None = ignore()
    lines: list[Line] = has_many("line")


@dataclass
class Note:
    note_id: str = pk()
    text: str = ""


@dataclass
class Holder:
    OtherId: int = 0


# ============================================================================
# Template compilation
# ============================================================================


class TestCompileTemplate:
    """#{name} placeholders become positional binds."""

    def test_mapping_source(self) -> None:
        """Placeholders are numbered left to right."""
        sql, params = compile_template(
            "UPDATE t SET a = #{a}, b = #{b} WHERE id = #{id}",
            {"a": 1, "b": "x", "id": 7},
        )
        assert sql == "UPDATE t SET a = :p_0, b = :p_1 WHERE id = :p_2"
        assert params == {"p_0": 1, "p_1": "x", "p_2": 7}

    def test_repeated_name(self) -> None:
        """A name used twice gets two binds."""
        sql, params = compile_template("SELECT #{x}, #{x}", {"x": 3})
        assert sql == "SELECT :p_0, :p_1"
        assert params == {"p_0": 3, "p_1": 3}

    def test_record_source(self) -> None:
        """Record attributes resolve by exact name."""
        order = Order(order_id=5, customer="ann")
        sql, params = compile_template("UPDATE o SET customer = #{customer} WHERE order_id = #{order_id}", order)
        assert sql == "UPDATE o SET customer = :p_0 WHERE order_id = :p_1"
        assert params == {"p_0": "ann", "p_1": 5}

    def test_record_source_field_name_fallback(self) -> None:
        """CapWords or camelCase names fall back to the snake attribute."""
        order = Order(order_id=5)
        _, params = compile_template("#{OrderId} #{orderId}", order)
        assert params == {"p_0": 5, "p_1": 5}

    def test_record_source_exact_attribute_first(self) -> None:
        """An attribute spelled exactly like the placeholder wins."""
        _, params = compile_template("#{OtherId}", Holder(OtherId=9))
        assert params == {"p_0": 9}

    def test_hyphenated_name(self) -> None:
        """Hyphens are allowed in placeholder names."""
        sql, params = compile_template("#{a-b}", {"a-b": 1})
        assert sql == ":p_0"
        assert params == {"p_0": 1}

    @pytest.mark.parametrize("template", ["#{}", "#{a b}", "#{a", "{a}", "# {a}"])
    def test_malformed_markers_are_literal(self, template: str) -> None:
        """Text that does not match the pattern is left untouched."""
        sql, params = compile_template(template, {"a": 1})
        assert sql == template
        assert params == {}

    def test_missing_name(self) -> None:
        """Unresolved names fail before execution."""
        with pytest.raises(MissingParamError, match="missing field nope"):
            compile_template("#{nope}", {"a": 1})

    def test_missing_record_attribute(self) -> None:
        """Records without the attribute fail too."""
        with pytest.raises(MissingParamError):
            compile_template("#{nope}", Order())


class TestParamSource:
    """param_source() picks the resolver for a value."""

    def test_mapping(self) -> None:
        """Mappings resolve by key."""
        assert isinstance(param_source({"a": 1}), MappingParams)

    def test_record(self) -> None:
        """Objects resolve by attribute."""
        assert isinstance(param_source(Order()), RecordParams)

    def test_passthrough(self) -> None:
        """Existing sources are reused."""
        source = MappingParams({})
        assert param_source(source) is source

    @pytest.mark.parametrize("value", [None, "text", 3, 1.5, [1, 2], (1,)])
    def test_unsupported(self, value) -> None:
        """Scalars, strings and sequences are not parameter sources."""
        with pytest.raises(TypeShapeError):
            param_source(value)


# ============================================================================
# Execution
# ============================================================================


class TestExecWithParam:
    """exec_with_param() compiles and executes."""

    async def test_executes_compiled_statement(self, fake_executor) -> None:
        """The executor sees binds and ordered values."""
        await exec_with_param(fake_executor, "DELETE FROM t WHERE id = #{id}", {"id": 4})
        assert fake_executor.executed == [("DELETE FROM t WHERE id = :p_0", {"p_0": 4})]

    async def test_no_placeholders_runs_without_arguments(self, fake_executor, caplog) -> None:
        """A plain statement runs with zero arguments and logs a warning."""
        result = await exec_with_param(fake_executor, "DELETE FROM t", {"id": 4})
        assert result.rows_affected == 1
        assert fake_executor.executed == [("DELETE FROM t", {})]
        assert "no parameter found" in caplog.text

    async def test_missing_param_executes_nothing(self, fake_executor) -> None:
        """Resolution failure happens before the executor is called."""
        with pytest.raises(MissingParamError):
            await exec_with_param(fake_executor, "DELETE FROM t WHERE id = #{id}", {})
        assert fake_executor.executed == []


class TestRowAffectCheck:
    """exec_with_row_affect_check() compares affected rows."""

    async def test_match(self, fake_executor) -> None:
        """Matching count returns normally."""
        fake_executor.queue_result(rows_affected=1)
        await exec_with_row_affect_check(fake_executor, 1, "UPDATE t SET a = 1 WHERE id = :id", {"id": 1})

    async def test_mismatch(self, fake_executor) -> None:
        """Two rows affected while expecting one is a RowAffectError."""
        fake_executor.queue_result(rows_affected=2)
        with pytest.raises(RowAffectError) as exc_info:
            await exec_with_row_affect_check(fake_executor, 1, "UPDATE t SET a = 1")
        err = exc_info.value
        assert (err.statement, err.expected, err.actual) == ("UPDATE t SET a = 1", 1, 2)
        assert is_row_affect_error(err)
        assert "should only affect 1 rows, really affect 2 rows" in str(err)

    async def test_zero_rows(self, fake_executor) -> None:
        """A no-op update is distinguishable from other failures."""
        fake_executor.queue_result(rows_affected=0)
        with pytest.raises(OrmError) as exc_info:
            await exec_with_row_affect_check(fake_executor, 1, "UPDATE t SET a = 1")
        assert is_row_affect_error(exc_info.value)
        assert not is_row_affect_error(ValueError("x"))


# ============================================================================
# Insert
# ============================================================================


class TestInsert:
    """insert() writes persisted fields and back-fills auto keys."""

    async def test_statement_skips_auto_ignored_and_relations(self, fake_executor) -> None:
        """Only customer and total are written."""
        fake_executor.queue_result(rows_affected=1, last_insert_id=11)
        await insert(fake_executor, Order(customer="ann", total=2.5, draft=True))
        statement, params = fake_executor.executed[0]
        assert statement == "INSERT INTO order (customer, total) VALUES (:p_0, :p_1)"
        assert params == {"p_0": "ann", "p_1": 2.5}

    async def test_auto_key_written_back(self, fake_executor) -> None:
        """The generated key is stored on the caller's record."""
        fake_executor.queue_result(rows_affected=1, last_insert_id=11)
        order = Order(customer="ann")
        await insert(fake_executor, order)
        assert order.order_id == 11

    async def test_manual_key_written(self, fake_executor) -> None:
        """A non-auto key is part of the statement and not overwritten."""
        fake_executor.queue_result(rows_affected=1, last_insert_id=99)
        note = Note(note_id="n-1", text="hi")
        await insert(fake_executor, note)
        assert fake_executor.executed[0][1] == {"p_0": "n-1", "p_1": "hi"}
        assert note.note_id == "n-1"

    async def test_auto_key_without_driver_id(self, fake_executor) -> None:
        """Missing generated key is an error, not a silent None."""
        fake_executor.queue_result(rows_affected=1, last_insert_id=None)
        with pytest.raises(OrmError, match="generated key"):
            await insert(fake_executor, Order())


class TestInsertBatch:
    """insert_batch() writes one multi-row statement."""

    async def test_contiguous_ids(self, fake_executor) -> None:
        """K records receive L, L+1, ..., L+K-1 in input order."""
        fake_executor.queue_result(rows_affected=3, last_insert_id=40)
        orders = [Order(customer=c) for c in ("a", "b", "c")]
        await insert_batch(fake_executor, orders)
        assert [o.order_id for o in orders] == [40, 41, 42]

    async def test_single_statement(self, fake_executor) -> None:
        """One statement with one VALUES group per record."""
        fake_executor.queue_result(rows_affected=2, last_insert_id=1)
        await insert_batch(fake_executor, [Order(customer="a", total=1.0), Order(customer="b", total=2.0)])
        assert len(fake_executor.executed) == 1
        statement, params = fake_executor.executed[0]
        assert statement == "INSERT INTO order (customer, total) VALUES (:p_0, :p_1), (:p_2, :p_3)"
        assert params == {"p_0": "a", "p_1": 1.0, "p_2": "b", "p_3": 2.0}

    async def test_empty_batch(self, fake_executor) -> None:
        """An empty batch executes nothing."""
        assert await insert_batch(fake_executor, []) is None
        assert fake_executor.executed == []

    async def test_heterogeneous_batch(self, fake_executor) -> None:
        """Mixed record types are rejected before execution."""
        with pytest.raises(TypeShapeError):
            await insert_batch(fake_executor, [Order(), Note()])
        assert fake_executor.executed == []

    async def test_manual_keys_untouched(self, fake_executor) -> None:
        """Records with manual keys keep them."""
        fake_executor.queue_result(rows_affected=2, last_insert_id=0)
        notes = [Note(note_id="x"), Note(note_id="y")]
        await insert_batch(fake_executor, notes)
        assert [n.note_id for n in notes] == ["x", "y"]

    async def test_batch_refused_without_key_source(self, fake_executor) -> None:
        """Auto-key batches fail before writing on dialects that cannot report their keys."""
        fake_executor.dialect_name = "sqlite"
        with pytest.raises(OrmError, match="batch insert on sqlite"):
            await insert_batch(fake_executor, [Order(customer="a"), Order(customer="b")])
        assert fake_executor.executed == []

    async def test_batch_manual_keys_any_dialect(self, fake_executor) -> None:
        """Manual keys need no generated ids, whatever the dialect."""
        fake_executor.dialect_name = "sqlite"
        await insert_batch(fake_executor, [Note(note_id="x")])
        assert len(fake_executor.executed) == 1


# ============================================================================
# Insert with RETURNING
# ============================================================================


class TestInsertReturning:
    """On PostgreSQL the generated keys come back through RETURNING."""

    async def test_insert_statement(self, postgres_executor) -> None:
        """The key column is returned; nothing goes through execute()."""
        statement = "INSERT INTO order (customer, total) VALUES (:p_0, :p_1) RETURNING order_id"
        postgres_executor.add_response(statement, ["order_id"], [(7,)])
        order = Order(customer="ann", total=1.5)
        result = await insert(postgres_executor, order)
        assert postgres_executor.queries == [(statement, {"p_0": "ann", "p_1": 1.5})]
        assert postgres_executor.executed == []
        assert order.order_id == 7
        assert result.last_insert_id == 7
        assert postgres_executor.open_cursors == 0

    async def test_manual_key_uses_execute(self, postgres_executor) -> None:
        """Without an auto key there is nothing to return."""
        await insert(postgres_executor, Note(note_id="n-1", text="hi"))
        assert postgres_executor.executed[0][0] == "INSERT INTO note (note_id, text) VALUES (:p_0, :p_1)"
        assert postgres_executor.queries == []

    async def test_no_key_returned(self, postgres_executor) -> None:
        """An empty RETURNING result is an error."""
        postgres_executor.add_response(
            "INSERT INTO order (customer, total) VALUES (:p_0, :p_1) RETURNING order_id", ["order_id"], []
        )
        with pytest.raises(OrmError, match="no generated key"):
            await insert(postgres_executor, Order())

    async def test_batch_keys_in_input_order(self, postgres_executor) -> None:
        """Returned keys are paired with the records in ascending order."""
        statement = "INSERT INTO order (customer, total) VALUES (:p_0, :p_1), (:p_2, :p_3), (:p_4, :p_5) RETURNING order_id"
        postgres_executor.add_response(statement, ["order_id"], [(12,), (10,), (11,)])
        orders = [Order(customer=c) for c in ("a", "b", "c")]
        result = await insert_batch(postgres_executor, orders)
        assert [o.order_id for o in orders] == [10, 11, 12]
        assert result.rows_affected == 3

    async def test_batch_key_count_mismatch(self, postgres_executor) -> None:
        """Fewer keys than records is an error."""
        statement = "INSERT INTO order (customer, total) VALUES (:p_0, :p_1), (:p_2, :p_3) RETURNING order_id"
        postgres_executor.add_response(statement, ["order_id"], [(1,)])
        with pytest.raises(OrmError, match="expected 2 generated keys"):
            await insert_batch(postgres_executor, [Order(), Order()])
