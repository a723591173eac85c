"""Exceptions raised inside the resolution pipeline.

Each class maps to exactly one `FailureKind`. The pipeline stages catch them and turn
them into `Unresolved` outcomes together with the linkage accumulated before the failure.
"""

from dotbit.avatar.model.avatar import FailureKind, Linkage, Unresolved


class AvatarResolutionError(Exception):
    kind: FailureKind = FailureKind.unexpected_transport_failure

    def to_unresolved(self, linkage: Linkage) -> Unresolved:
        return Unresolved(kind=self.kind, linkage=linkage, detail=str(self))


class NoAvatarRecord(AvatarResolutionError):
    kind = FailureKind.no_avatar_record


class MissingOwnerKey(AvatarResolutionError):
    kind = FailureKind.missing_owner_key


class UnsupportedSchemeFormat(AvatarResolutionError):
    kind = FailureKind.unsupported_scheme_format


class MalformedTokenReference(AvatarResolutionError):
    kind = FailureKind.malformed_token_reference


class UnsupportedChain(AvatarResolutionError):
    kind = FailureKind.unsupported_chain


class ContractCallFailure(AvatarResolutionError):
    """The node answered the call with a JSON-RPC error, usually a revert."""

    kind = FailureKind.contract_call_failure


class OwnershipMismatch(AvatarResolutionError):
    kind = FailureKind.ownership_mismatch


class ZeroBalance(AvatarResolutionError):
    kind = FailureKind.zero_balance


class AbiDecodeFailure(AvatarResolutionError):
    kind = FailureKind.abi_decode_failure


class MetadataFetchFailure(AvatarResolutionError):
    kind = FailureKind.metadata_fetch_failure


class MissingImageField(AvatarResolutionError):
    kind = FailureKind.missing_image_field


class UnsupportedIpfsFormat(AvatarResolutionError):
    kind = FailureKind.unsupported_ipfs_format


class UnexpectedTransportFailure(AvatarResolutionError):
    kind = FailureKind.unexpected_transport_failure
