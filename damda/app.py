# module damda.app
from damda.app_setup.factory import create_app

# App globale
app = create_app()
