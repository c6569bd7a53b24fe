"""Parsing of `ls -l` output for delivery verification."""

from dataclasses import dataclass

from kubedrop.errors import VerificationFailed

# setuid, setgid, sticky for the user/group/other triples
_SPECIAL_BITS = (0o4000, 0o2000, 0o1000)


@dataclass
class ListingEntry:
    """One line of `ls -l`."""
    mode: int
    size: int
    path: str
    raw: str

    @property
    def is_executable(self) -> bool:
        return bool(self.mode & 0o111)


def permissions_to_mode(perms: str) -> int:
    """
    Convert a symbolic permission string to mode bits.

    Args:
        perms: e.g. "-rwxr-xr-x"; anything after the tenth character
            (ACL "+", SELinux ".") is ignored

    Returns:
        Permission bits, e.g. 0o755
    """
    if len(perms) < 10:
        raise ValueError(f"Not a permission string: {perms!r}")

    mode = 0
    for index, shift in enumerate((6, 3, 0)):
        read, write, execute = perms[1 + 3 * index:4 + 3 * index]
        if read == "r":
            mode |= 4 << shift
        if write == "w":
            mode |= 2 << shift
        if execute in "xst":
            mode |= 1 << shift
        if execute in "sStT":
            mode |= _SPECIAL_BITS[index]
    return mode


def parse_listing(line: str) -> ListingEntry:
    """
    Parse a single `ls -l` line (GNU coreutils or busybox layout).

    Only the leading columns are positional; the date takes two or three
    fields depending on locale, so the path is taken as the last field.

    Raises:
        VerificationFailed: the line does not look like a file listing
    """
    fields = line.split()
    if len(fields) < 6:
        raise VerificationFailed(f"Unrecognized listing: {line!r}")

    try:
        mode = permissions_to_mode(fields[0])
        size = int(fields[4])
    except ValueError as e:
        raise VerificationFailed(f"Unrecognized listing: {line!r}") from e

    return ListingEntry(mode=mode, size=size, path=fields[-1], raw=line.strip())
