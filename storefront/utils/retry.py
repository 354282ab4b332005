# storefront/utils/retry.py
from sqlalchemy.exc import IntegrityError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception, retry_if_exception_type

from storefront.domain.errors import TransactionError
from storefront.utils.settings import ORDER_NUMBER_MAX_ATTEMPTS


def _aborted_on_unique_key(exc: BaseException) -> bool:
    return isinstance(exc, TransactionError) and isinstance(exc.__cause__, IntegrityError)


def order_number_retry():
    #order_number collision -> fresh number in a fresh savepoint
    return retry(
        reraise=True,
        stop=stop_after_attempt(ORDER_NUMBER_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.01, min=0, max=0.2),
        retry=retry_if_exception_type(IntegrityError),
    )


def duplicate_line_retry():
    # concurrent insert of the same (cart, product, variant) line;
    # the second attempt finds the row and increments it
    return retry(
        reraise=True,
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        retry=retry_if_exception(_aborted_on_unique_key),
    )
