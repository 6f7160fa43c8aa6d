"""
Constants for atlinks.

This module defines:
- The rights-code table used to describe encoded permission tokens
- Effect codes of encoded permission tokens
- Locations and attribute names in the Active Roles configuration namespace
- Locations of schema helpers (display specifiers, extended rights)
"""

import os
import tempfile
from typing import Dict, NamedTuple, Optional

# =========================================================================
# Encoded permission tokens
# =========================================================================

# Effect field of a permission token
EFFECTS: Dict[str, str] = {
    "A": "Allow",
    "D": "Deny",
}

# Apply-to text when a token has no object class GUID
ALL_CLASSES = "All Classes"

# Kinds of rights-code descriptions
FIXED = "fixed"  # literal text
ATTRIBUTE = "attribute"  # text with an attribute/class name slot
EXTENDED = "extended"  # extended right or validated write lookup


class RightsRule(NamedTuple):
    """
    Description rule for one rights code.

    Attributes:
        kind: One of FIXED, ATTRIBUTE or EXTENDED
        text: Literal text (FIXED) or a format string with one ``{}`` slot (ATTRIBUTE)
        fallback: Name used when the token carries no right GUID
    """

    kind: str
    text: str = ""
    fallback: Optional[str] = None


FULL_CONTROL_CODE = "CCDCLCSWRPWPDTLOCRCOSDRCWDWO"

RIGHTS_RULES: Dict[str, RightsRule] = {
    FULL_CONTROL_CODE: RightsRule(FIXED, "Full Control"),
    # Property access
    "RP": RightsRule(ATTRIBUTE, "Read {}", "All Properties"),
    "WP": RightsRule(ATTRIBUTE, "Write {}", "All Properties"),
    "RPWP": RightsRule(ATTRIBUTE, "Read/Write {}", "All Properties"),
    # Child objects
    "CC": RightsRule(ATTRIBUTE, "Create {} Objects", "All Child"),
    "DC": RightsRule(ATTRIBUTE, "Delete {} Objects", "All Child"),
    "CCDC": RightsRule(ATTRIBUTE, "Create/Delete {} Objects", "All Child"),
    "MT": RightsRule(ATTRIBUTE, "Move {} into this container", "All Child"),
    # Standard rights
    "SD": RightsRule(FIXED, "Delete"),
    "DT": RightsRule(FIXED, "Delete Tree"),
    "RC": RightsRule(FIXED, "Read Control"),
    "WD": RightsRule(FIXED, "Write Control"),
    "RCWD": RightsRule(FIXED, "Read/Write Control"),
    "LC": RightsRule(FIXED, "List Contents"),
    "LO": RightsRule(FIXED, "List"),
    "CO": RightsRule(FIXED, "Copy"),
    "MF": RightsRule(FIXED, "Move Out"),
    # Extended rights and validated writes
    "CR": RightsRule(EXTENDED, fallback="All Extended Rights"),
    "SW": RightsRule(EXTENDED, fallback="All Validated Writes"),
}

# Placeholder for an extended right GUID that is not registered
UNKNOWN_EXTENDED_RIGHT = "Unknown extended right ({})"

# =========================================================================
# Display specifiers
# =========================================================================

# Hex LCID of the locale used when no client locale is requested (en-US)
DEFAULT_LOCALE = "409"

# Suffix of display specifier object names, e.g. "CN=user-Display"
DISPLAY_SPECIFIER_SUFFIX = "-Display"

# =========================================================================
# Active Roles configuration namespace
# =========================================================================

ARS_CONFIGURATION_PATH = "CN=Configuration"
ACCESS_TEMPLATES_PATH = f"CN=Access Templates,{ARS_CONFIGURATION_PATH}"
ACCESS_TEMPLATE_LINKS_PATH = f"CN=Access Template Links,{ARS_CONFIGURATION_PATH}"
DISPLAY_SPECIFIERS_PATH = (
    f"CN=Consolidated Display Specifiers,{ARS_CONFIGURATION_PATH}"
)

# Object classes
ACCESS_TEMPLATE_CLASS = "edsAccessTemplate"
ACCESS_TEMPLATE_LINK_CLASS = "edsAccessTemplateLink"

# Link attributes
LINK_TRUSTEE_SID = "edsaTrusteeSID"
LINK_DIRECTORY_OBJECT = "edsaDirectoryObject"
LINK_ACCESS_TEMPLATE = "edsaAccessTemplate"

# Template attribute holding the effective ACE list
TEMPLATE_ACE_LIST = "edsaATEffectiveACEList"

# Extended rights container, relative to the configuration naming context
EXTENDED_RIGHTS_CONTAINER = "CN=Extended-Rights"

# =========================================================================
# Output
# =========================================================================

DEFAULT_EXPORT_PATH = os.path.join(tempfile.gettempdir(), "atlinks")
