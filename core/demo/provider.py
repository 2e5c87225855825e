"""
The device_provider resource type served by the demo device.

Its canonicalize hook always rewrites ``string`` to ``changed``, so the
seeded ``wibble`` resource (string 'sample') is returned by the device in
non-canonical form. That makes it the reference case for strictness
handling:

    off      - string changed 'sample' to 'changed' is applied silently
    warning  - warning with returned and canonicalized values, run continues
    error    - error with the same values, nothing applied
"""

from core.attributes import AttributeSet, AttributeSpec, ResourceType
from core.resource_types import register_type


def canonicalize_device_provider(attrs: AttributeSet) -> AttributeSet:
    attrs["string"] = "changed"
    return attrs


DEVICE_PROVIDER = register_type(ResourceType(
    name="device_provider",
    attributes=[
        AttributeSpec("name", namevar=True, description="The name of the resource you want to manage."),
        AttributeSpec(
            "ensure",
            kind="enum",
            values=("present", "absent"),
            default="present",
            description="Whether this resource should be present or absent on the target system.",
        ),
        AttributeSpec("string", description="An attribute to exercise canonicalization."),
    ],
    canonicalize_hook=canonicalize_device_provider,
    description="A device resource for exercising the reconciler",
))
