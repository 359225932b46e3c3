"""
Unit Tests for the Balance Threshold Relation
=============================================

Tests for compilation, shape digests and witness generation.

Version: 1.0.0
"""

import pytest

from shared.zk.circuit import MAX_BIT_WIDTH, BalanceThresholdRelation
from shared.zk.exceptions import (
    ConstraintUnsatisfiedError,
    InvalidWitnessError,
    RelationShapeError,
)
from shared.zk.field import FIELD_MODULUS


class TestRelationShape:
    """Tests for the compiled constraint system."""

    def test_variable_partition(self):
        relation = BalanceThresholdRelation(bit_width=8)
        system = relation.compile()

        assert system.num_variables == 3 + 8
        assert system.num_public == 1
        assert system.num_private == 1 + 8
        assert len(system.constraints) == 8 + 1

    def test_static_declaration(self):
        assert BalanceThresholdRelation.PUBLIC_INPUTS == ("threshold",)
        assert BalanceThresholdRelation.PRIVATE_INPUTS == ("balance",)

    def test_shape_digest_is_stable(self):
        assert BalanceThresholdRelation(16).shape_digest == BalanceThresholdRelation(16).shape_digest

    def test_shape_digest_depends_on_bit_width(self):
        assert BalanceThresholdRelation(8).shape_digest != BalanceThresholdRelation(16).shape_digest

    @pytest.mark.parametrize("bit_width", [0, -1, MAX_BIT_WIDTH + 1])
    def test_bit_width_out_of_range(self, bit_width):
        with pytest.raises(RelationShapeError):
            BalanceThresholdRelation(bit_width=bit_width)

    def test_bit_width_must_be_int(self):
        with pytest.raises(RelationShapeError):
            BalanceThresholdRelation(bit_width=True)

    def test_value_bound_stays_below_field(self):
        relation = BalanceThresholdRelation(bit_width=MAX_BIT_WIDTH)
        assert relation.value_bound < FIELD_MODULUS


class TestWitness:
    """Tests for witness construction and constraint evaluation."""

    @pytest.fixture
    def relation(self):
        return BalanceThresholdRelation(bit_width=8)

    @pytest.mark.parametrize(
        "balance,threshold",
        [(200, 150), (150, 150), (0, 0), (255, 0), (255, 255)],
    )
    def test_satisfied_when_threshold_at_most_balance(self, relation, balance, threshold):
        witness = relation.build_witness(balance, threshold)
        assert relation.is_satisfied(witness)

        assignment = relation.assignment(witness)
        assert assignment[:3] == [1, threshold, balance]
        bits = assignment[3:]
        assert sum(bit << i for i, bit in enumerate(bits)) == balance - threshold

    @pytest.mark.parametrize("balance,threshold", [(100, 150), (0, 1), (254, 255)])
    def test_unsatisfied_when_threshold_exceeds_balance(self, relation, balance, threshold):
        witness = relation.build_witness(balance, threshold)
        assert not relation.is_satisfied(witness)
        with pytest.raises(ConstraintUnsatisfiedError):
            relation.assignment(witness)

    @pytest.mark.parametrize(
        "balance,threshold",
        [(-1, 0), (0, -5), (256, 0), (0, 256), ("100", 5), (100, 5.0), (True, 0), (None, 1)],
    )
    def test_invalid_values_rejected(self, relation, balance, threshold):
        with pytest.raises(InvalidWitnessError):
            relation.build_witness(balance, threshold)

    def test_witness_repr_hides_balance(self, relation):
        witness = relation.build_witness(123, 45)
        assert "123" not in repr(witness)
        assert witness.public_inputs == [45]
