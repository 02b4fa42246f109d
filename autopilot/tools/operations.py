"""Operation names the healing layer relies on.

The core treats operation names as opaque strings; these are the few that fix
handlers and post-hoc validators invoke on their own. A host surface that does
not provide them simply gets "unknown operation" answers and the affected
fixes report failure.
"""

CREATE_GAMEOBJECT = "create_gameobject"
FIND_GAMEOBJECT = "find_gameobject"
ADD_COMPONENT = "add_component"
GET_COMPONENTS = "get_components"
CREATE_AND_ATTACH_SCRIPT = "create_and_attach_script"
FIND_SCRIPT = "find_script"
READ_SCRIPT = "read_script"
MODIFY_SCRIPT = "modify_script"
