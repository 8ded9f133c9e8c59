from enum import Enum
from typing import Any, Dict, Tuple, Union

from pydantic import BaseModel, ConfigDict, model_validator
from rdkit import Chem
from rdkit.Chem.rdchem import Mol
from rdkit.rdBase import BlockLogs


class Namespace(str, Enum):
    """Query namespaces accepted by the compound provider."""

    CID = "cid"
    NAME = "name"
    SMILES = "smiles"
    INCHI = "inchi"
    INCHIKEY = "inchikey"


def canonical_smiles(smiles: str) -> str:
    """Canonicalize SMILES with RDKit, returning the input when it does not parse."""
    block = BlockLogs()  # noqa: F841
    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        return smiles
    return Chem.MolToSmiles(mol)


def normalize_identifier(namespace: Namespace, identifier: str) -> str:
    """Normalize an identifier so equivalent queries map to the same key."""
    identifier = identifier.strip()
    if namespace is Namespace.NAME:
        return " ".join(identifier.split()).casefold()
    if namespace is Namespace.CID:
        return str(int(identifier)) if identifier.isdecimal() else identifier
    if namespace is Namespace.INCHIKEY:
        return identifier.upper()
    if namespace is Namespace.SMILES:
        return canonical_smiles(identifier) if identifier else identifier
    return identifier


class SerCompound(BaseModel):
    """Serializable key identifying one compound query.

    Keys are immutable and normalized on construction, so two keys built from
    equivalent queries compare equal and hash identically.

    Example:
        >>> SerCompound.with_name("Carbon  Dioxide") == SerCompound.with_name("carbon dioxide")
        True
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    namespace: Namespace
    identifier: str

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        namespace = data.get("namespace")
        identifier = data.get("identifier")
        if isinstance(namespace, str):
            namespace = namespace.strip().lower()
        if isinstance(identifier, int) and not isinstance(identifier, bool) and namespace == Namespace.CID.value:
            identifier = str(identifier)
        try:
            namespace = Namespace(namespace)
        except ValueError:
            # leave it for field validation to report
            return {**data, "namespace": namespace}
        if isinstance(identifier, str):
            identifier = normalize_identifier(namespace, identifier)
        return {**data, "namespace": namespace, "identifier": identifier}

    @classmethod
    def from_cid(cls, cid: int) -> "SerCompound":
        return cls(namespace=Namespace.CID, identifier=str(cid))

    @classmethod
    def with_name(cls, name: str) -> "SerCompound":
        return cls(namespace=Namespace.NAME, identifier=name)

    @classmethod
    def with_smiles(cls, smiles: str) -> "SerCompound":
        return cls(namespace=Namespace.SMILES, identifier=smiles)

    @classmethod
    def with_inchi(cls, inchi: str) -> "SerCompound":
        return cls(namespace=Namespace.INCHI, identifier=inchi)

    @classmethod
    def with_inchikey(cls, inchikey: str) -> "SerCompound":
        return cls(namespace=Namespace.INCHIKEY, identifier=inchikey)

    @classmethod
    def from_mol(cls, mol: Mol) -> "SerCompound":
        """Key an RDKit molecule by its InChIKey.

        Raises:
            ValueError: If RDKit cannot compute an InChIKey for the molecule.
        """
        if mol is None:
            raise ValueError("mol cannot be None")
        inchikey = Chem.MolToInchiKey(mol)
        if not inchikey:
            raise ValueError("Could not compute InChIKey for molecule")
        return cls.with_inchikey(inchikey)

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.namespace.value, self.identifier)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SerCompound):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SerCompound):
            return NotImplemented
        return self.sort_key <= other.sort_key

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SerCompound):
            return NotImplemented
        return self.sort_key > other.sort_key

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SerCompound):
            return NotImplemented
        return self.sort_key >= other.sort_key

    def to_query(self) -> Tuple[str, Union[int, str]]:
        """Query parameters for the provider; numeric CIDs are returned as ``int``."""
        if self.namespace is Namespace.CID and self.identifier.isdecimal():
            return (self.namespace.value, int(self.identifier))
        return (self.namespace.value, self.identifier)

    def to_dict(self) -> Dict[str, str]:
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"{self.namespace.value}:{self.identifier}"
