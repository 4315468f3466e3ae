# Section Field System
from models.section import Section
from models.field import Field
from models.section_field_assignment import SectionFieldAssignment

# Entity tables
from models.entry import EntryBase, CommonSection
