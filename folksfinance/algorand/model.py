"""
Algorand domain model

https://developer.algorand.org/docs/get-details/accounts/
"""

from typing import NewType

import algosdk.encoding

# Algorand account address. The address is 58 characters long
# https://developer.algorand.org/docs/get-details/accounts/#transformation-public-key-to-algorand-address
Address = NewType("Address", str)

AssetId = NewType("AssetId", int)

MicroAlgos = NewType("MicroAlgos", int)


class AppId(int):
    """
    Algorand smart contract application ID
    """

    def to_address(self) -> Address:
        """
        Generates the smart contract's Algorand address from its app ID
        """

        app_id_checksum = algosdk.encoding.checksum(b"appID" + self.to_bytes(8, "big"))
        return Address(algosdk.encoding.encode_address(app_id_checksum))


def address_from_public_key(public_key: bytes) -> Address:
    """
    Encodes a 32 byte public key as an Algorand address
    """
    return Address(algosdk.encoding.encode_address(public_key))
