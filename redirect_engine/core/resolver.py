"""Version Resolver: picks the artifact a product redirect points at."""

import logging

from redirect_engine.storage.adapter import RegistryStoreAdapter
from .models import FolderEntry, NotFoundError, VersionArtifact

logger = logging.getLogger(__name__)


def select_latest(files: list[FolderEntry]) -> FolderEntry | None:
    """
    Select the file with the greatest creation time.

    Ties are broken by the lexicographically greatest file name. Modification
    time is ignored so that re-saving an old version never makes it latest.

    Args:
        files: Candidate files (no folders)

    Returns:
        The latest file, or None if there are no candidates with a creation time
    """
    dated = [f for f in files if f.created_at is not None]
    if not dated:
        return None
    return max(dated, key=lambda f: (f.created_at, f.name))


def select_exact(files: list[FolderEntry], version_token: str) -> FolderEntry | None:
    """
    Select the file whose name equals version_token exactly.

    Matching is case-sensitive with no partial matches. If several files
    share the name, the newest of them wins.
    """
    matches = [f for f in files if f.name == version_token]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(f"{len(matches)} files named '{version_token}'; using the newest")
        return select_latest(matches) or matches[0]
    return matches[0]


class VersionResolver:
    """Resolves a product folder and optional version token to an artifact."""

    def __init__(self, adapter: RegistryStoreAdapter):
        self.adapter = adapter

    def resolve(self, folder_id: str, version_token: str | None = None) -> VersionArtifact:
        """
        Resolve the artifact to redirect to.

        Args:
            folder_id: Product folder handle
            version_token: Exact file name, or None for the latest version

        Returns:
            The selected VersionArtifact

        Raises:
            NotFoundError: If the folder is unreachable or nothing matches
            TransientStorageError: If the store kept failing
        """
        try:
            entries = self.adapter.get_folder_listing(folder_id)
        except NotFoundError:
            raise NotFoundError(f"Folder '{folder_id}' is not reachable")

        # Only direct file children are artifacts
        files = [e for e in entries if not e.is_folder]

        if version_token is None or version_token == "":
            selected = select_latest(files)
            if selected is None:
                raise NotFoundError(f"Folder '{folder_id}' contains no versions")
        else:
            selected = select_exact(files, version_token)
            if selected is None:
                raise NotFoundError(
                    f"Version '{version_token}' not found in folder '{folder_id}'"
                )

        logger.debug(f"Resolved folder '{folder_id}' to file '{selected.name}'")
        return VersionArtifact(
            file_id=selected.entry_id,
            file_name=selected.name,
            created_at=selected.created_at,
        )
