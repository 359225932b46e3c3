"""
Groth16 Keys and Setup
======================

Proving/verifying key containers and the (single-party) Groth16 setup for
a ``BalanceThresholdRelation``.

Keys serialize to JSON documents close to the snarkjs layout
(``vk_alpha_1``, ``vk_beta_2``, ``IC``, ...) plus the ``relation_id`` of
the relation they were derived from and a ``key_id`` fingerprint of the
verifying key. Regenerating keys yields a new ``key_id``; every proof
issued under the old one stops verifying.

Version: 1.0.0
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any

from shared.zk.circuit import BalanceThresholdRelation
from shared.zk.curve import (
    G1Point,
    G2Point,
    decode_g1,
    decode_g2,
    encode_g1,
    encode_g2,
    g1_mul,
    g2_mul,
)
from shared.zk.field import FIELD_MODULUS, EvaluationDomain, inv, random_fr


PROTOCOL = "groth16"
CURVE = "bn128"


def _canonical_json(data: dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode()


@dataclass(frozen=True)
class VerifyingKey:
    """Groth16 verifying key."""

    relation_id: str
    bit_width: int
    alpha_g1: G1Point
    beta_g2: G2Point
    gamma_g2: G2Point
    delta_g2: G2Point
    ic: tuple[G1Point, ...]

    @property
    def num_public(self) -> int:
        return len(self.ic) - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": PROTOCOL,
            "curve": CURVE,
            "relation_id": self.relation_id,
            "bit_width": self.bit_width,
            "nPublic": self.num_public,
            "vk_alpha_1": encode_g1(self.alpha_g1),
            "vk_beta_2": encode_g2(self.beta_g2),
            "vk_gamma_2": encode_g2(self.gamma_g2),
            "vk_delta_2": encode_g2(self.delta_g2),
            "IC": [encode_g1(p) for p in self.ic],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerifyingKey":
        if data.get("protocol") != PROTOCOL or data.get("curve") != CURVE:
            raise ValueError("verifying key is not a groth16/bn128 key")
        ic = tuple(decode_g1(p, allow_infinity=True) for p in data["IC"])
        if len(ic) != int(data["nPublic"]) + 1:
            raise ValueError("IC length does not match nPublic")
        return cls(
            relation_id=str(data["relation_id"]),
            bit_width=int(data["bit_width"]),
            alpha_g1=decode_g1(data["vk_alpha_1"]),
            beta_g2=decode_g2(data["vk_beta_2"]),
            gamma_g2=decode_g2(data["vk_gamma_2"]),
            delta_g2=decode_g2(data["vk_delta_2"]),
            ic=ic,
        )

    @property
    def key_id(self) -> str:
        """Fingerprint of the verifying key."""
        return hashlib.sha256(_canonical_json(self.to_dict())).hexdigest()


@dataclass(frozen=True)
class ProvingKey:
    """Groth16 proving key."""

    relation_id: str
    key_id: str
    bit_width: int
    domain_size: int
    num_public: int
    alpha_g1: G1Point
    beta_g1: G1Point
    beta_g2: G2Point
    delta_g1: G1Point
    delta_g2: G2Point
    a_query: tuple[G1Point, ...]
    b_g1_query: tuple[G1Point, ...]
    b_g2_query: tuple[G2Point, ...]
    l_query: tuple[G1Point, ...]
    h_query: tuple[G1Point, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": PROTOCOL,
            "curve": CURVE,
            "relation_id": self.relation_id,
            "key_id": self.key_id,
            "bit_width": self.bit_width,
            "domain_size": self.domain_size,
            "nPublic": self.num_public,
            "alpha_1": encode_g1(self.alpha_g1),
            "beta_1": encode_g1(self.beta_g1),
            "beta_2": encode_g2(self.beta_g2),
            "delta_1": encode_g1(self.delta_g1),
            "delta_2": encode_g2(self.delta_g2),
            "A": [encode_g1(p) for p in self.a_query],
            "B1": [encode_g1(p) for p in self.b_g1_query],
            "B2": [encode_g2(p) for p in self.b_g2_query],
            "L": [encode_g1(p) for p in self.l_query],
            "H": [encode_g1(p) for p in self.h_query],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProvingKey":
        if data.get("protocol") != PROTOCOL or data.get("curve") != CURVE:
            raise ValueError("proving key is not a groth16/bn128 key")

        def g1_list(name: str) -> tuple[G1Point, ...]:
            return tuple(decode_g1(p, allow_infinity=True) for p in data[name])

        return cls(
            relation_id=str(data["relation_id"]),
            key_id=str(data["key_id"]),
            bit_width=int(data["bit_width"]),
            domain_size=int(data["domain_size"]),
            num_public=int(data["nPublic"]),
            alpha_g1=decode_g1(data["alpha_1"]),
            beta_g1=decode_g1(data["beta_1"]),
            beta_g2=decode_g2(data["beta_2"]),
            delta_g1=decode_g1(data["delta_1"]),
            delta_g2=decode_g2(data["delta_2"]),
            a_query=g1_list("A"),
            b_g1_query=g1_list("B1"),
            b_g2_query=tuple(decode_g2(p, allow_infinity=True) for p in data["B2"]),
            l_query=g1_list("L"),
            h_query=g1_list("H"),
        )


@dataclass(frozen=True)
class KeyPair:
    """Proving and verifying key derived from one setup run."""

    proving_key: ProvingKey
    verifying_key: VerifyingKey

    @property
    def relation_id(self) -> str:
        return self.verifying_key.relation_id

    @property
    def key_id(self) -> str:
        return self.proving_key.key_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "proving_key": self.proving_key.to_dict(),
            "verifying_key": self.verifying_key.to_dict(),
        }

    def to_bytes(self) -> bytes:
        return _canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeyPair":
        pair = cls(
            proving_key=ProvingKey.from_dict(data["proving_key"]),
            verifying_key=VerifyingKey.from_dict(data["verifying_key"]),
        )
        if pair.proving_key.key_id != pair.verifying_key.key_id:
            raise ValueError("proving key does not belong to the verifying key")
        return pair

    @classmethod
    def from_bytes(cls, raw: bytes | str) -> "KeyPair":
        return cls.from_dict(json.loads(raw))


def setup(relation: BalanceThresholdRelation) -> KeyPair:
    """
    Run the Groth16 setup for ``relation``.

    The trapdoor (tau, alpha, beta, gamma, delta) exists only inside this
    call and is deleted before returning.
    """
    system = relation.system
    domain = EvaluationDomain.for_constraints(len(system.constraints))
    n = system.num_variables
    num_public = system.num_public

    tau = random_fr()
    while domain.vanishing_at(tau) == 0:
        tau = random_fr()
    alpha, beta, gamma, delta = (random_fr() for _ in range(4))

    lagrange = domain.lagrange_at(tau)
    u, v, w = [0] * n, [0] * n, [0] * n
    for row, constraint in enumerate(system.constraints):
        basis = lagrange[row]
        for target, lc in ((u, constraint.a), (v, constraint.b), (w, constraint.c)):
            for var, coeff in lc.items():
                target[var] = (target[var] + coeff * basis) % FIELD_MODULUS

    gamma_inv = inv(gamma)
    delta_inv = inv(delta)
    combined = [(beta * u[j] + alpha * v[j] + w[j]) % FIELD_MODULUS for j in range(n)]
    z_tau = domain.vanishing_at(tau)

    h_scalars = []
    power = 1
    for _ in range(domain.size - 1):
        h_scalars.append(power * z_tau % FIELD_MODULUS * delta_inv % FIELD_MODULUS)
        power = power * tau % FIELD_MODULUS

    verifying_key = VerifyingKey(
        relation_id=relation.shape_digest,
        bit_width=relation.bit_width,
        alpha_g1=g1_mul(alpha),
        beta_g2=g2_mul(beta),
        gamma_g2=g2_mul(gamma),
        delta_g2=g2_mul(delta),
        ic=tuple(g1_mul(combined[j] * gamma_inv) for j in range(num_public + 1)),
    )
    proving_key = ProvingKey(
        relation_id=relation.shape_digest,
        key_id=verifying_key.key_id,
        bit_width=relation.bit_width,
        domain_size=domain.size,
        num_public=num_public,
        alpha_g1=verifying_key.alpha_g1,
        beta_g1=g1_mul(beta),
        beta_g2=verifying_key.beta_g2,
        delta_g1=g1_mul(delta),
        delta_g2=verifying_key.delta_g2,
        a_query=tuple(g1_mul(x) for x in u),
        b_g1_query=tuple(g1_mul(x) for x in v),
        b_g2_query=tuple(g2_mul(x) for x in v),
        l_query=tuple(g1_mul(combined[j] * delta_inv) for j in range(num_public + 1, n)),
        h_query=tuple(g1_mul(x) for x in h_scalars),
    )

    del tau, alpha, beta, gamma, delta, gamma_inv, delta_inv, lagrange, u, v, w, combined
    return KeyPair(proving_key=proving_key, verifying_key=verifying_key)
