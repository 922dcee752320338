"""Species domain package.

This package contains the species catalog views and their data handling:
- Species, Profile, Comment: Records as returned by the gateway
- validate_species: Validation and normalization before any write
- MutationFormController: Draft state and submission for create/edit forms
- AddSpeciesDialog, EditSpeciesDialog: Modal mutation surfaces
- SpeciesDetailDialog: Author profile and comments, fetched on open
- SpeciesCard, SpeciesListView: List orchestration
"""

from biodiversityhub.species.card import SpeciesCard
from biodiversityhub.species.controller import FormMode, MutationFormController, SubmitOutcome
from biodiversityhub.species.details import DialogState, SpeciesDetailDialog
from biodiversityhub.species.dialogs import AddSpeciesDialog, EditSpeciesDialog
from biodiversityhub.species.list_view import SpeciesListView
from biodiversityhub.species.models import Comment, Kingdom, Profile, Species
from biodiversityhub.species.schema import SpeciesRecord, ValidationFailure, validate_species

__all__ = [
    "AddSpeciesDialog",
    "Comment",
    "DialogState",
    "EditSpeciesDialog",
    "FormMode",
    "Kingdom",
    "MutationFormController",
    "Profile",
    "Species",
    "SpeciesCard",
    "SpeciesDetailDialog",
    "SpeciesListView",
    "SpeciesRecord",
    "SubmitOutcome",
    "ValidationFailure",
    "validate_species",
]
