from typing import Union
from decimal import Decimal

from plainledger.amount import Amount, MixedAmount
from plainledger.errors import LedgerError, \
    AmbiguousInference, UnbalancedTransaction
from plainledger.journal import Transaction, Posting, Journal, \
    REGULAR, VIRTUAL, BALANCED_VIRTUAL
from plainledger.printing import mixed2str

def _locate(entity, lines: list[str] | None) -> tuple:
    position = None
    context = ""
    if entity is not None and entity.span is not None:
        position = entity.span.start
    if lines and position:
        try:
            context = lines[position.line - 1]
        except IndexError:
            context = ""
    return (position, context)

def _sum(amounts) -> MixedAmount:
    total = MixedAmount()
    for a in amounts:
        total = total + a
    return total

# Posting groups that must each sum to zero. Virtual postings are free.
_BALANCED_GROUPS = (("real", REGULAR),
                    ("balanced virtual", BALANCED_VIRTUAL))

def balance_transaction(txn: Transaction,
                        lines: list[str] | None = None) -> Transaction:
    """Infer the elided amount of ``txn`` and check that it balances.

    Real postings must sum to zero per commodity, and so must the
    balanced virtual ones. At most one posting may leave its amount out;
    it receives the negated sum of the other postings in its group,
    which has to be in a single commodity. Returns the completed
    transaction.
    """
    position, context = _locate(txn, lines)
    postings = list(txn.postings)
    elided = [i for i in range(len(postings))
              if postings[i].amount.is_missing]
    if len(elided) > 1:
        raise AmbiguousInference(
            "Could not balance this transaction "
            "(too many missing amounts).", position, context)
    if elided and postings[elided[0]].type == VIRTUAL:
        raise AmbiguousInference(
            "Virtual posting may not be elided.", position, context)

    residuals = {}
    for label, posting_type in _BALANCED_GROUPS:
        members = [i for i in range(len(postings))
                   if postings[i].type == posting_type]
        total = _sum(postings[i].amount for i in members
                     if i not in elided).nonzero()
        missing = [i for i in members if i in elided]
        if missing:
            if len(total) > 1:
                raise AmbiguousInference(
                    "Could not infer a single amount, the other "
                    f"{label} postings leave {mixed2str(total)}.",
                    position, context)
            i = missing[0]
            postings[i] = postings[i].with_amount(-total)
        elif not total.is_zero():
            residuals[label] = total

    if residuals:
        x = "; ".join(f"{label} postings are off by {mixed2str(r)}"
                      for label, r in residuals.items())
        raise UnbalancedTransaction(
            f"Could not balance this transaction ({x}).",
            residuals, position, context)
    return txn.with_postings(postings)

def is_balanced(txn: Transaction) -> bool:
    for label, posting_type in _BALANCED_GROUPS:
        amounts = [p.amount for p in txn.postings if p.type == posting_type]
        if any(a.is_missing for a in amounts):
            return False
        if not _sum(amounts).is_zero():
            return False
    return True

class Balance(dict):
    def __init__(self, parent: "Balance" = None):
        super().__init__()
        self._parent = parent
    def _check_type(self, key, val = None):
        if not isinstance(key, str):
            raise TypeError(f"Incorrect type: {type(key)}.")
        if val is not None and not isinstance(val, Decimal):
            raise TypeError(f"Incorrect type: {type(val)}.")
    def _remove_empty_balance(self, key):
        try:
            if self[key] == Decimal('0'):
                self.pop(key)
        except KeyError:
            pass
    def __missing__(self, key):
        self._check_type(key)
        return Decimal("0")
    def __setitem__(self, key, val):
        self._check_type(key, val)
        super().__setitem__(key, val)
        self._remove_empty_balance(key)
    def __iadd__(self, amount: Amount):
        if not isinstance(amount, Amount):
            raise TypeError(f"Unsupported type {type(amount)} for addition.")
        self[amount.commodity] = self[amount.commodity] + amount.quantity
        if self._parent is not None:
            self._parent += amount
        return self
    def __isub__(self, amount: Amount):
        if not isinstance(amount, Amount):
            raise TypeError(f"Unsupported type {type(amount)} for subtraction.")
        self[amount.commodity] = self[amount.commodity] - amount.quantity
        if self._parent is not None:
            self._parent -= amount
        return self
    def __eq__(self, other):
        if len(self) == 0 and other == len(self):
            return True
        if not isinstance(other, type(self)):
            return False
        return super().__eq__(other)
    def __ne__(self, other):
        return not (self == other)

class Account():
    """A node of the account tree.

    Looking up ``account["a:b:c"]`` walks (and creates) the colon
    separated path below this node. Amounts added to a node are added
    to every ancestor as well, so each node's balance includes its
    children.
    """
    def __init__(self, name: str, parent: Union["Account", None] = None):
        if not name or name.find(":") != -1:
            raise ValueError(f"Account name '{name}' is improperly formed.")
        self._name = name
        self._parent = parent
        self._children = {}
        if parent is not None:
            self._balance = Balance(parent.balance)
        else:
            self._balance = Balance()
    def __getitem__(self, name):
        account = self
        for i in name.split(":"):
            if i not in account._children:
                account._children[i] = Account(i, account)
            account = account._children[i]
        return account
    def __contains__(self, name):
        account = self
        for i in name.split(":"):
            if i not in account._children:
                return False
            account = account._children[i]
        return True
    @property
    def name(self):
        return self._name
    @property
    def parent(self):
        return self._parent
    @property
    def children(self):
        return self._children
    @property
    def balance(self):
        return self._balance
    def full_name(self) -> str:
        names = []
        account = self
        while account._parent is not None:
            names.append(account._name)
            account = account._parent
        return ":".join(reversed(names))
    def sorted_children(self) -> list[str]:
        return sorted(self._children)
    def sorted_commodities(self) -> list[str]:
        return sorted(self._balance)
    def balance_excluding_children(self) -> Balance:
        b = Balance()
        for cmdty in self._balance:
            b[cmdty] = self._balance[cmdty]
        for child in self._children.values():
            for cmdty in child.balance:
                b[cmdty] = b[cmdty] - child.balance[cmdty]
        return b
    def apply(self, posting: Posting):
        if posting.amount.is_missing:
            raise LedgerError(f"Posting to '{posting.account}' has no amount.")
        account = self[posting.account]
        for amount in posting.amount:
            account._balance += amount
    def __iadd__(self, amount: Amount):
        self._balance += amount
        return self
    def __isub__(self, amount: Amount):
        self._balance -= amount
        return self
    def __str__(self):
        return f"Account({self.name}, balance={dict(self.balance)})"

def apply_transaction(txn: Transaction, account: Account,
                      real: bool = False):
    for p in txn.postings:
        if real and not p.is_real():
            continue
        account.apply(p)

def apply_journal(journal: Journal, account: Account, real: bool = False):
    for txn in journal.transactions:
        apply_transaction(txn, account, real)
