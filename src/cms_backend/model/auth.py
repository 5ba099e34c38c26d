from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, JSON, String, func

from cms_backend.permissions import principal
from cms_backend.permissions.cache import register_read_through

from .base import Base


class Manager(Base):
    __tablename__ = 'manager'

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    email = Column(String(320), unique=True, nullable=False)
    name = Column(String(255))
    kind = Column(Enum('inactive', 'standard', 'admin', name='manager_kind'), nullable=False, default='standard')
    # Either a list of role slugs or {locale: [role slugs]}
    roles = Column(JSON, nullable=False, default=list)
    # [{"resource": ..., "document_id": ...}]
    custom_resource_access = Column(JSON, nullable=False, default=list)
    current_project = Column(String(255))

    # Not persisted; recomputed from ``roles`` whenever the row is loaded
    permissions = None

    def to_principal(self) -> principal.Manager:
        return principal.Manager(
            id=self.id,
            kind=self.kind or 'standard',
            roles=self.roles,
            custom_resource_access=self.custom_resource_access,
            current_project=self.current_project,
            permissions=self.permissions,
        )

    def __repr__(self):
        return f"<Manager {self.email} ({self.kind})>"


class Client(Base):
    __tablename__ = 'client'

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    name = Column(String(255), unique=True, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    roles = Column(JSON, nullable=False, default=list)

    permissions = None

    def to_principal(self) -> principal.Client:
        return principal.Client(
            id=self.id,
            active=self.active if self.active is not None else True,
            roles=self.roles,
            permissions=self.permissions,
        )

    def __repr__(self):
        return f"<Client {self.name}>"


register_read_through(Manager)
register_read_through(Client)
