"""Value models for the neume editor.

This module provides a centralized location for the pydantic models used
throughout the editor:

- Core values (Zone, Coords, PitchInfo, Ornament) and the element enums
- Editor configuration (EditorSettings)
- Messages for the rendering and persistence collaborators
- Records delivered by the document parser

The mutable staff elements themselves (Staff, Clef, Neume, ...) live in
their own modules since they carry back-references and derived state.
"""

# Re-export core models
from neume_editor.models.core_models import (
    NEUMATIC_CHROMA,
    ClefShape,
    Coords,
    DivisionKind,
    ElementKind,
    HeadShape,
    NeumeModifier,
    Ornament,
    OrnamentKind,
    PitchInfo,
    Zone,
    round_half_up,
)

# Re-export setting models
from neume_editor.models.settings_models import EditorSettings

# Re-export collaborator messages
from neume_editor.models.command_models import (
    ChangeDescriptor,
    ChangeType,
    CommandAction,
    CommandResult,
    EditCommand,
    PitchUpdate,
)

# Re-export document records
from neume_editor.models.record_models import ElementRecord, NoteRecord, StaffRecord
