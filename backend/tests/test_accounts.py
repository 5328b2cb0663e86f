"""
账号、令牌与钱包
"""
from datetime import timedelta, timezone
from decimal import Decimal

import pytest

from app.core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from app.services.accounts import AccountService, get_password_hash, verify_password
from app.services.orders import OrderLine, OrderService
from tests.helpers import add_item


@pytest.fixture
def accounts(store, settings, clock):
    return AccountService(store, settings, clock)


def _register(accounts, email="meera@university.edu"):
    return accounts.register({"name": "Meera", "email": email, "password": "secret123"})


def test_password_hash_roundtrip():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_register_creates_student(accounts):
    user = _register(accounts, email="Meera@University.edu")
    assert user.role == "student"
    assert user.email == "meera@university.edu"
    assert user.balance == Decimal("0")

    with pytest.raises(ConflictError):
        _register(accounts)


def test_login(accounts):
    user = _register(accounts)
    assert accounts.login("meera@university.edu", "secret123") is user
    with pytest.raises(AuthError):
        accounts.login("meera@university.edu", "wrong")
    with pytest.raises(AuthError):
        accounts.login("nobody@university.edu", "secret123")


def test_token_lifecycle(accounts, clock, settings):
    user = _register(accounts)
    token = accounts.issue_token(user)
    assert accounts.authenticate(token) is user

    clock.advance(hours=settings.token_ttl_hours, seconds=1)
    with pytest.raises(AuthError, match="expired"):
        accounts.authenticate(token)


def test_token_with_aware_expiry(accounts, store, clock):
    user = _register(accounts)
    token = accounts.issue_token(user)
    # 数据库可能返回带时区的过期时间
    record = store.accounts.get_token(token)
    record.expires_at = clock.now.replace(tzinfo=timezone.utc) + timedelta(minutes=5)

    assert accounts.authenticate(token) is user
    clock.advance(minutes=6)
    with pytest.raises(AuthError, match="expired"):
        accounts.authenticate(token)


def test_revoked_token_is_rejected(accounts):
    user = _register(accounts)
    token = accounts.issue_token(user)
    accounts.revoke_token(token)
    with pytest.raises(AuthError):
        accounts.authenticate(token)
    with pytest.raises(AuthError, match="not authenticated"):
        accounts.authenticate(None)


def test_update_profile(accounts):
    user = _register(accounts)
    accounts.update_profile(user, {"department": "Physics", "name": None, "password": "changed1"})
    assert user.department == "Physics"
    assert user.name == "Meera"
    assert accounts.login("meera@university.edu", "changed1") is user


def test_add_balance_records_credit(accounts, store):
    user = _register(accounts)

    entry = accounts.add_balance(user.id, Decimal("250"))

    assert (entry.balance_before, entry.balance_after) == (Decimal("0"), Decimal("250"))
    assert entry.type == "credit"
    assert store.accounts.get(user.id).balance == Decimal("250")
    assert accounts.transactions(user.id) == [entry]

    with pytest.raises(ValidationError):
        accounts.add_balance(user.id, Decimal("0"))
    with pytest.raises(NotFoundError):
        accounts.add_balance(9999, Decimal("10"))


def test_self_service_credit_and_debit(accounts, store):
    user = _register(accounts)

    entry, balance = accounts.create_payment(user, Decimal("100"), "credit")
    assert balance == Decimal("100")
    assert entry.description == "Wallet top-up"

    entry, balance = accounts.create_payment(user, Decimal("30"), "debit", "Printing")
    assert (entry.balance_before, entry.balance_after) == (Decimal("100"), Decimal("70"))
    assert entry.type == "debit"
    assert entry.description == "Printing"
    assert store.accounts.get(user.id).balance == Decimal("70")
    assert len(accounts.transactions(user.id)) == 2


def test_debit_beyond_balance_changes_nothing(accounts, store):
    user = _register(accounts)
    accounts.create_payment(user, Decimal("20"), "credit")

    with pytest.raises(ConflictError, match="insufficient balance"):
        accounts.create_payment(user, Decimal("20.01"), "debit")

    assert store.accounts.get(user.id).balance == Decimal("20")
    assert len(accounts.transactions(user.id)) == 1


@pytest.mark.parametrize("amount, type_", [(Decimal("0"), "credit"), (Decimal("-5"), "debit"),
                                           (Decimal("5"), "refund")])
def test_invalid_payment(accounts, amount, type_):
    user = _register(accounts)
    with pytest.raises(ValidationError):
        accounts.create_payment(user, amount, type_)


def test_debit_settles_own_pending_order(accounts, store, settings, clock):
    user = _register(accounts)
    accounts.create_payment(user, Decimal("200"), "credit")
    item = add_item(store, price=Decimal("45"))
    orders = OrderService(store, settings, clock)
    order = orders.create_order(user, [OrderLine(item.id, 2)])

    with pytest.raises(ValidationError, match="order total"):
        accounts.create_payment(user, Decimal("45"), "debit", order_id=order.id)
    assert store.accounts.get(user.id).balance == Decimal("200")

    entry, balance = accounts.create_payment(user, Decimal("90"), "debit", order_id=order.id)

    assert balance == Decimal("110")
    assert entry.order_id == order.id
    paid = store.orders.get(order.id)
    assert (paid.payment_status, paid.payment_method) == ("paid", "balance")
    with pytest.raises(ConflictError, match="not awaiting payment"):
        accounts.create_payment(user, Decimal("90"), "debit", order_id=order.id)


def test_wallet_paid_order_is_refunded_on_cancel(accounts, store, settings, clock):
    user = _register(accounts)
    accounts.create_payment(user, Decimal("100"), "credit")
    item = add_item(store, price=Decimal("45"))
    orders = OrderService(store, settings, clock)
    order = orders.create_order(user, [OrderLine(item.id, 1)])
    accounts.create_payment(user, Decimal("45"), "debit", order_id=order.id)

    cancelled = orders.cancel_order(user, order.id)

    assert cancelled.payment_status == "refunded"
    assert store.accounts.get(user.id).balance == Decimal("100")


def test_payment_cannot_name_someone_elses_order(accounts, store, settings, clock):
    owner = _register(accounts)
    other = _register(accounts, email="kiran@university.edu")
    accounts.create_payment(other, Decimal("100"), "credit")
    item = add_item(store)
    order = OrderService(store, settings, clock).create_order(owner, [OrderLine(item.id, 1)])

    with pytest.raises(NotFoundError):
        accounts.create_payment(other, Decimal("45"), "debit", order_id=order.id)
    assert store.accounts.get(other.id).balance == Decimal("100")
