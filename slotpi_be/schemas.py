from marshmallow import Schema, fields, validates, ValidationError
from marshmallow.validate import Range, Length
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field

from .models import db, LedgerEntry, Payment


# --- Ledger Schemas ---
class LedgerEntrySchema(SQLAlchemyAutoSchema):
    class Meta:
        model = LedgerEntry
        load_instance = True
        include_fk = True
        sqla_session = db.session

    id = auto_field(dump_only=True)
    user_id = auto_field(dump_only=True)
    entry_type = auto_field(data_key='type', dump_only=True, metadata={
        "description": "BET, PAYOUT, DEPOSIT_CREDIT or BONUS_PAYOUT. Every played bonus round has one "
                       "BONUS_PAYOUT, with amount 0 and meta.won false when nothing was won."
    })
    amount_credits = auto_field(dump_only=True, metadata={"description": "Signed amount in credits"})
    ref_type = auto_field(dump_only=True)
    ref_id = auto_field(dump_only=True)
    meta = fields.Method("get_meta", dump_only=True)
    created_at = auto_field(dump_only=True)

    def get_meta(self, obj):
        return obj.meta or {}


class PaymentSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Payment
        load_instance = True
        include_fk = True
        sqla_session = db.session

    amount_pi = fields.Decimal(as_string=True, dump_only=True)


# --- Request Schemas ---
# Bet and pick values are loaded raw; the game layer validates them
# and reports INVALID_BET / INVALID_PICKS.
class SpinRequestSchema(Schema):
    user_id = fields.Int(required=True, strict=True, validate=Range(min=1))
    bet_credits = fields.Raw(required=True)


class BonusPickRequestSchema(Schema):
    user_id = fields.Int(required=True, strict=True, validate=Range(min=1))
    spin_id = fields.Str(required=True, validate=Length(min=1, max=128))
    picks = fields.Raw(required=True)


class HistoryQuerySchema(Schema):
    limit = fields.Int(load_default=50, validate=Range(min=1, error="Limit must be at least 1."))
    offset = fields.Int(load_default=0, validate=Range(min=0, error="Offset cannot be negative."))


class DepositApproveSchema(Schema):
    user_id = fields.Int(required=True, strict=True, validate=Range(min=1))
    payment_id = fields.Str(required=True, validate=Length(min=1, max=128))

    @validates('payment_id')
    def validate_payment_id(self, value, **kwargs):
        if not value.strip():
            raise ValidationError('Payment ID cannot be blank.')


class DepositCompleteSchema(DepositApproveSchema):
    txid = fields.Str(load_default=None, allow_none=True, validate=Length(max=255))
