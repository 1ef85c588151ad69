"""
Module: estate_kernel.selectors.template_selector
Responsibility: Resolve a business action to its active transaction template.
"""

from sqlalchemy import select

from estate_kernel.exceptions import TemplateNotFoundError
from estate_kernel.models.template import TransactionTemplate
from estate_kernel.selectors.base import BaseSelector


class TemplateSelector(BaseSelector[TransactionTemplate]):

    def get_active(self, transaction_type: str) -> TransactionTemplate:
        """
        Raises:
            TemplateNotFoundError: no template, or the template is inactive.
        """
        template = self.session.execute(
            select(TransactionTemplate).where(
                TransactionTemplate.transaction_type == transaction_type,
                TransactionTemplate.is_active.is_(True),
            )
        ).scalar_one_or_none()
        if template is None:
            raise TemplateNotFoundError(transaction_type)
        return template

    def list_templates(self, active_only: bool = True) -> list[TransactionTemplate]:
        stmt = select(TransactionTemplate).order_by(TransactionTemplate.transaction_type)
        if active_only:
            stmt = stmt.where(TransactionTemplate.is_active.is_(True))
        return list(self.session.execute(stmt).scalars())
