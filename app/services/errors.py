"""Activation error taxonomy.

Services raise these internally. The validator and the redemption
coordinator catch them at their boundary and hand back structured
results, so callers only ever see a ``reason`` string and a message.
"""


class ActivationError(Exception):
    reason = "activation_error"
    default_message = "حدث خطأ أثناء معالجة رمز التفعيل."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InputError(ActivationError):
    reason = "invalid_input"
    default_message = "الرجاء إدخال رمز التفعيل."


class CodeLookupError(ActivationError):
    reason = "code_not_found"
    default_message = "رمز التفعيل غير موجود أو غير صحيح."


class CodeStateError(ActivationError):
    """The code exists but its state forbids redemption."""


class CodeInactiveError(CodeStateError):
    reason = "code_inactive"
    default_message = "رمز التفعيل هذا غير نشط حاليًا (قد يكون تم إلغاؤه)."


class CodeAlreadyUsedError(CodeStateError):
    reason = "code_already_used"
    default_message = "رمز التفعيل هذا تم استخدامه مسبقاً."


class RaceLostError(CodeAlreadyUsedError):
    """The conditional update matched zero rows: another redemption won."""


class CodeNotYetValidError(CodeStateError):
    reason = "code_not_yet_valid"
    default_message = "رمز التفعيل هذا غير صالح للاستخدام بعد."


class CodeExpiredError(CodeStateError):
    reason = "code_expired"
    default_message = "صلاحية رمز التفعيل هذا قد انتهت."


class PreconditionError(ActivationError):
    pass


class MissingPartitionChoiceError(PreconditionError):
    reason = "missing_partition_choice"
    default_message = "لم يتم اختيار المادة للاشتراك الفردي المحدد بالرمز."


class MissingUserIdentityError(PreconditionError):
    reason = "missing_user_identity"
    default_message = "بيانات التفعيل الأساسية غير مكتملة (المستخدم، الرمز)."


class CommitError(ActivationError):
    reason = "commit_failed"
    default_message = "تعذر حفظ التفعيل. يرجى المحاولة مرة أخرى."
