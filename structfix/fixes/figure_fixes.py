"""
Retagging of Figure elements that hold real text.
"""

import logging

from structfix.fixes.base import IssueFix, P_STRUCTURE

logger = logging.getLogger(__name__)


class ChangeFigureRole(IssueFix):
    priority = P_STRUCTURE

    def __init__(self, element: int, new_role: str = "P", page: int = 0):
        self.element = element
        self.new_role = new_role
        self.page = page
        self.changed = False

    def apply(self, ctx):
        tree = ctx.tree
        self.changed = False
        if not tree.is_attached(self.element) or tree.mapped_role(self.element) != "Figure":
            return
        tree.set_role(self.element, self.new_role)
        self.changed = True
        logger.debug("[ChangeFigureRole] Figure #%s retagged as %s", self.element, self.new_role)

    def describe(self, ctx):
        where = f" (p. {self.page})" if self.page else ""
        return f"Changed Figure to {self.new_role} for element #{self.element}{where}"

    @property
    def group_label(self):
        return "Figure roles changed"
