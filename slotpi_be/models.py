from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from sqlalchemy import BigInteger, Index, JSON, UniqueConstraint, text

db = SQLAlchemy()

# Ledger entry types
ENTRY_BET = 'BET'
ENTRY_PAYOUT = 'PAYOUT'
ENTRY_BONUS_PAYOUT = 'BONUS_PAYOUT'
ENTRY_DEPOSIT_CREDIT = 'DEPOSIT_CREDIT'

# Ledger reference types
REF_SPIN = 'spin'
REF_BONUS_PICK = 'bonus_pick'
REF_PI_PAYMENT = 'pi_payment'

class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    pi_uid = db.Column(db.String(100), unique=True, nullable=False, index=True)
    username = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Balance is the sum of ledger_entries.amount_credits; never stored on the user row.
    ledger_entries = db.relationship('LedgerEntry', back_populates='user', lazy='dynamic')
    payments = db.relationship('Payment', back_populates='user', lazy='dynamic')

    def __repr__(self):
        return f"<User {self.id} ({self.pi_uid})>"

class LedgerEntry(db.Model):
    __tablename__ = 'ledger_entry'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    entry_type = db.Column(db.String(32), nullable=False, index=True)
    amount_credits = db.Column(BigInteger, nullable=False)
    ref_type = db.Column(db.String(32), nullable=False)
    ref_id = db.Column(db.String(128), nullable=False)
    meta = db.Column(JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship('User', back_populates='ledger_entries')

    __table_args__ = (
        UniqueConstraint('user_id', 'entry_type', 'ref_type', 'ref_id', name='uq_ledger_entry_ref'),
        Index('ix_ledger_entry_ref', 'ref_type', 'ref_id'),
        Index('ix_ledger_entry_user_created', 'user_id', 'created_at'),
        # An external payment is credited once, whichever user asks for it.
        Index('uq_ledger_entry_deposit_ref', 'entry_type', 'ref_type', 'ref_id', unique=True,
              sqlite_where=text("entry_type = 'DEPOSIT_CREDIT'"),
              postgresql_where=text("entry_type = 'DEPOSIT_CREDIT'")),
    )

    def __repr__(self):
        return f"<LedgerEntry {self.id} (User: {self.user_id}, Type: {self.entry_type}, Amount: {self.amount_credits}, Ref: {self.ref_type}/{self.ref_id})>"

class Payment(db.Model):
    __tablename__ = 'payment'
    id = db.Column(db.Integer, primary_key=True)
    pi_payment_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    direction = db.Column(db.String(32), nullable=True)
    network = db.Column(db.String(64), nullable=True)
    amount_pi = db.Column(db.Numeric(20, 7), nullable=False, default=0)
    memo = db.Column(db.String(255), nullable=False, default='')
    meta = db.Column(JSON, nullable=True)
    txid = db.Column(db.String(255), nullable=True)
    status_developer_approved = db.Column(db.Boolean, default=False, nullable=False)
    status_transaction_verified = db.Column(db.Boolean, default=False, nullable=False)
    status_developer_completed = db.Column(db.Boolean, default=False, nullable=False)
    status_cancelled = db.Column(db.Boolean, default=False, nullable=False)
    status_user_cancelled = db.Column(db.Boolean, default=False, nullable=False)
    credited_ledger_entry_id = db.Column(db.Integer, db.ForeignKey('ledger_entry.id'), nullable=True, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship('User', back_populates='payments')
    credited_ledger_entry = db.relationship('LedgerEntry')

    def __repr__(self):
        return f"<Payment {self.pi_payment_id} (User: {self.user_id}, Direction: {self.direction}, Amount: {self.amount_pi})>"
