"""Compound records as returned by the PubChem property table.

The cache treats a record as an opaque value: it only needs records to be
immutable and serializable. Every property is optional so that documents
written before a property was added still validate.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, model_validator

# snake_case field name -> PubChem property name, in request order
PUBCHEM_NAMES: Dict[str, str] = {
    "cid": "CID",
    "molecular_formula": "MolecularFormula",
    "molecular_weight": "MolecularWeight",
    "canonical_smiles": "CanonicalSMILES",
    "isomeric_smiles": "IsomericSMILES",
    "inchi": "InChI",
    "inchi_key": "InChIKey",
    "iupac_name": "IUPACName",
    "title": "Title",
    "xlogp": "XLogP",
    "exact_mass": "ExactMass",
    "monoisotopic_mass": "MonoisotopicMass",
    "tpsa": "TPSA",
    "complexity": "Complexity",
    "charge": "Charge",
    "hbond_donor_count": "HBondDonorCount",
    "hbond_acceptor_count": "HBondAcceptorCount",
    "rotatable_bond_count": "RotatableBondCount",
    "heavy_atom_count": "HeavyAtomCount",
    "isotope_atom_count": "IsotopeAtomCount",
    "atom_stereo_count": "AtomStereoCount",
    "defined_atom_stereo_count": "DefinedAtomStereoCount",
    "undefined_atom_stereo_count": "UndefinedAtomStereoCount",
    "bond_stereo_count": "BondStereoCount",
    "defined_bond_stereo_count": "DefinedBondStereoCount",
    "undefined_bond_stereo_count": "UndefinedBondStereoCount",
    "covalent_unit_count": "CovalentUnitCount",
    "volume_3d": "Volume3D",
    "x_steric_quadrupole_3d": "XStericQuadrupole3D",
    "y_steric_quadrupole_3d": "YStericQuadrupole3D",
    "z_steric_quadrupole_3d": "ZStericQuadrupole3D",
    "feature_count_3d": "FeatureCount3D",
    "feature_acceptor_count_3d": "FeatureAcceptorCount3D",
    "feature_donor_count_3d": "FeatureDonorCount3D",
    "feature_anion_count_3d": "FeatureAnionCount3D",
    "feature_cation_count_3d": "FeatureCationCount3D",
    "feature_ring_count_3d": "FeatureRingCount3D",
    "feature_hydrophobe_count_3d": "FeatureHydrophobeCount3D",
    "conformer_model_rmsd_3d": "ConformerModelRMSD3D",
    "effective_rotor_count_3d": "EffectiveRotorCount3D",
    "conformer_count_3d": "ConformerCount3D",
    "fingerprint_2d": "Fingerprint2D",
}

# property names a provider should request (CID is always returned)
PROPERTY_NAMES: Tuple[str, ...] = tuple(v for k, v in PUBCHEM_NAMES.items() if k != "cid")

# unknown fields deeper than this are rejected; also bounds reference cycles
MAX_EXTRA_DEPTH = 32


def json_native_error(value: Any) -> Optional[str]:
    """Describe the first value that would not survive a JSON round trip, if any."""
    stack: List[Tuple[str, Any, int]] = [("", value, 0)]
    while stack:
        path, item, depth = stack.pop()
        name = path or "value"
        if item is None or type(item) in (str, bool, int):
            continue
        if type(item) is float:
            if not math.isfinite(item):
                return f"{name} is not a finite number"
            continue
        if type(item) not in (list, dict):
            return f"{name} has unsupported type {type(item).__name__}"
        if depth >= MAX_EXTRA_DEPTH:
            return f"{name} is nested deeper than {MAX_EXTRA_DEPTH} levels"
        if type(item) is list:
            stack.extend((f"{path}[{i}]", v, depth + 1) for i, v in enumerate(item))
            continue
        for k, v in item.items():
            if type(k) is not str:
                return f"{name} has non-string key {k!r}"
            stack.append((f"{path}.{k}" if path else k, v, depth + 1))
    return None


def _validation_alias(name: str) -> AliasChoices:
    return AliasChoices(name, PUBCHEM_NAMES.get(name, name))


class CompoundProperties(BaseModel):
    """Properties of one compound.

    Accepts both snake_case field names and PubChem property names, so a row of
    a PubChem ``PropertyTable`` response validates directly::

        CompoundProperties.model_validate({"CID": 962, "MolecularFormula": "H2O"})

    Unknown fields are preserved and written back when the cache is saved.
    """

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
        allow_inf_nan=False,
        alias_generator=AliasGenerator(validation_alias=_validation_alias),
    )

    cid: Optional[int] = None
    molecular_formula: Optional[str] = None
    molecular_weight: Optional[str] = None
    canonical_smiles: Optional[str] = None
    isomeric_smiles: Optional[str] = None
    inchi: Optional[str] = None
    inchi_key: Optional[str] = None
    iupac_name: Optional[str] = None
    title: Optional[str] = None
    xlogp: Optional[float] = None
    exact_mass: Optional[str] = None
    monoisotopic_mass: Optional[str] = None
    tpsa: Optional[float] = None
    complexity: Optional[float] = None
    charge: Optional[int] = None
    hbond_donor_count: Optional[int] = None
    hbond_acceptor_count: Optional[int] = None
    rotatable_bond_count: Optional[int] = None
    heavy_atom_count: Optional[int] = None
    isotope_atom_count: Optional[int] = None
    atom_stereo_count: Optional[int] = None
    defined_atom_stereo_count: Optional[int] = None
    undefined_atom_stereo_count: Optional[int] = None
    bond_stereo_count: Optional[int] = None
    defined_bond_stereo_count: Optional[int] = None
    undefined_bond_stereo_count: Optional[int] = None
    covalent_unit_count: Optional[int] = None
    volume_3d: Optional[float] = None
    x_steric_quadrupole_3d: Optional[float] = None
    y_steric_quadrupole_3d: Optional[float] = None
    z_steric_quadrupole_3d: Optional[float] = None
    feature_count_3d: Optional[int] = None
    feature_acceptor_count_3d: Optional[int] = None
    feature_donor_count_3d: Optional[int] = None
    feature_anion_count_3d: Optional[int] = None
    feature_cation_count_3d: Optional[int] = None
    feature_ring_count_3d: Optional[int] = None
    feature_hydrophobe_count_3d: Optional[int] = None
    conformer_model_rmsd_3d: Optional[float] = None
    effective_rotor_count_3d: Optional[float] = None
    conformer_count_3d: Optional[int] = None
    fingerprint_2d: Optional[str] = None

    @model_validator(mode="after")
    def _check_extra_fields(self) -> "CompoundProperties":
        error = json_native_error(self.__pydantic_extra__ or {})
        if error is not None:
            raise ValueError(f"Unknown fields must hold JSON values: {error}")
        return self

    def clone(self) -> "CompoundProperties":
        """Copy that shares no mutable state with this record."""
        if not self.__pydantic_extra__:
            return self
        return self.model_copy(deep=True)

    def to_dict(self) -> Dict[str, Any]:
        """All fields, unknown ones included, keyed by snake_case name."""
        return self.model_dump(mode="json")
