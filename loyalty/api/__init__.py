# API blueprints
