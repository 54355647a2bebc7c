from __future__ import annotations

"""
Program error taxonomy.

Every instruction failure is raised as a ProgramError subclass and turned
into a failed receipt by the executor. Codes follow the usual on-chain
layout:

- 0..99      system / funding errors
- 100        malformed instruction
- 2000..3999 account constraint errors
- 6000+      errors owned by the voting program itself
"""

from typing import Any, Dict


class ProgramError(RuntimeError):
    code: int = 0
    name: str = "ProgramError"
    message: str = "program error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or type(self).message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"Error Code: {self.name}. Error Number: {self.code}. Error Message: {self.message}."

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "name": self.name}


# ----------------------------- system -----------------------------


class AccountAlreadyInUse(ProgramError):
    code = 0
    name = "AccountAlreadyInUse"
    message = "account already in use"

    def __init__(self, address_hex: str = "") -> None:
        self.address = address_hex
        super().__init__(f"Allocate: account Address {{ address: {address_hex} }} already in use")


class InsufficientFunds(ProgramError):
    code = 1
    name = "InsufficientFunds"
    message = "insufficient lamports"

    def __init__(self, needed: int = 0, available: int = 0) -> None:
        self.needed = int(needed)
        self.available = int(available)
        super().__init__(f"insufficient lamports {available}, need {needed}")


class InvalidInstruction(ProgramError):
    code = 100
    name = "InvalidInstruction"
    message = "invalid instruction"


class AlreadyProcessed(ProgramError):
    code = 101
    name = "AlreadyProcessed"
    message = "This transaction has already been processed"


# ----------------------------- account constraints -----------------------------


class ConstraintSeeds(ProgramError):
    code = 2006
    name = "ConstraintSeeds"
    message = "A seeds constraint was violated"


class AccountDiscriminatorMismatch(ProgramError):
    code = 3002
    name = "AccountDiscriminatorMismatch"
    message = "Account discriminator did not match what was expected"


class AccountOwnedByWrongProgram(ProgramError):
    code = 3007
    name = "AccountOwnedByWrongProgram"
    message = "The given account is owned by a different program than expected"


class AccountNotSigner(ProgramError):
    code = 3010
    name = "AccountNotSigner"
    message = "The given account did not sign"


class AccountNotInitialized(ProgramError):
    code = 3012
    name = "AccountNotInitialized"
    message = "The program expected this account to be already initialized"


class InvalidProgramId(ProgramError):
    code = 3008
    name = "InvalidProgramId"
    message = "Program ID was not as expected"


# ----------------------------- voting program -----------------------------


class NotOwner(ProgramError):
    code = 6000
    name = "NotOwner"
    message = "Only the owner can create proposals."


class TitleTooLong(ProgramError):
    code = 6001
    name = "TitleTooLong"
    message = "Proposal title is too long."


class MathOverflow(ProgramError):
    code = 6002
    name = "MathOverflow"
    message = "Math overflow."


class InvalidProposalAccount(ProgramError):
    code = 6003
    name = "InvalidProposalAccount"
    message = "Invalid proposal account for given proposal_id."
