from __future__ import annotations

import logging
from typing import Any, Optional

from ..auth.firebase import TokenVerifier, authenticate
from ..errors import GatewayError
from ..models.account import BrandContext
from ..models.api_models import GenerateResponse
from ..pipelines.dispatcher import PipelineDispatcher
from .brand_service import BrandService
from .credit_service import CreditService, calculate_cost
from .normalizer import normalize_body


logger = logging.getLogger(__name__)


class ContentGateway:
    """
    One ``generateContent`` call end to end:
    authenticate, normalize, validate, meter, personalize, generate.
    Nothing about the body is reported back to an unauthenticated caller.

    Credits are deducted before the model is called. A generation failure
    keeps the deduction unless ``refund_on_failure`` is set.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        credits: CreditService,
        brands: BrandService,
        dispatcher: PipelineDispatcher,
        refund_on_failure: bool = False,
    ) -> None:
        self._verifier = verifier
        self._credits = credits
        self._brands = brands
        self._dispatcher = dispatcher
        self._refund_on_failure = refund_on_failure

    async def generate(
        self,
        body: Any,
        authorization: Optional[str],
        correlation_id: Optional[str] = None,
    ) -> GenerateResponse:
        identity = await authenticate(authorization, self._verifier)
        request = normalize_body(body)
        self._dispatcher.validate(request)

        payload = request.payload
        cost = calculate_cost(request.type, payload.options, payload.has_image)
        account = await self._credits.deduct(
            identity.uid,
            cost,
            email=identity.email,
            name=identity.name,
            correlation_id=correlation_id,
        )
        logger.info(
            "Generating %s for %s (cost=%d, correlation_id=%s)",
            request.type,
            identity.uid,
            cost,
            correlation_id,
        )

        if payload.use_brand_data:
            brand = await self._brands.get_brand_context(identity.uid)
        else:
            brand = BrandContext()

        try:
            result = await self._dispatcher.dispatch(request, brand)
        except Exception as exc:
            if account is not None:
                await self._credits.record_failed_generation(
                    identity.uid, cost, type(exc).__name__, correlation_id=correlation_id
                )
                if self._refund_on_failure:
                    await self._refund(identity.uid, cost, exc, correlation_id)
            raise

        return GenerateResponse(
            result=result,
            credits_deducted=cost if account is not None else 0,
            remaining_credits=account.credits if account is not None else None,
        )

    async def _refund(
        self, uid: str, cost: int, cause: Exception, correlation_id: Optional[str]
    ) -> None:
        logger.info("Refunding %d credits to %s after %s", cost, uid, type(cause).__name__)
        try:
            await self._credits.refund(uid, cost, correlation_id=correlation_id)
        except GatewayError:
            # the caller still gets the generation error
            logger.exception("Refund of %d credits to %s failed", cost, uid)
