from dataclasses import dataclass

from lockbom.models.ecosystem import Ecosystem


@dataclass
class ArtifactDescriptor:
    """A build output, such as a POM, that other files in the tree may depend on."""
    name: str
    version: str
    filename: str
    ecosystem: Ecosystem = Ecosystem.MAVEN
    # Lookup only: the parent is reported by its own descriptor
    depends_on: 'ArtifactDescriptor | None' = None
